"""
EVTC Summary - EVTC Parser
Reads arcdps .evtc/.zevtc/.zip files into an encounter summary

Binary format based on: https://www.deltaconnected.com/arcdps/evtc/README.txt

File layout (little endian):
    header          16 bytes
    agent_count     u32
    agents          agent_count x 96 bytes
    skill_count     u32
    skills          skill_count x 68 bytes
    combat events   to end of file, width set by the header revision
"""

import io
import struct
import zipfile
import zlib
from contextlib import contextmanager
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import BinaryIO, Iterator, List, Mapping, Optional, Union

from agents import AGENT_RECORD_SIZE, AgentTable, PlayerDetails
from encounters import CMPolicy, EncounterInfo, EncounterResolver, get_encounter_table
from event_parsers import (
    ALL_PARSERS, ParseState, parse_boss_max_health, parse_guild, parse_log_end,
    parse_log_start, parse_precise_end, parse_reward, scan_first, sweep,
)
from events import MAX_REVISION, EventStream, event_record_size
from exceptions import CorruptedFile, IoError, MalformedHeader, UnsupportedRevision
from logger import get_logger
from models import CMStatus, EncounterHeader, ParsedSummary
from summary import build_summary

logger = get_logger('parser')

EVTC_MAGIC = b'EVTC'
HEADER_SIZE = 16
COUNT_SIZE = 4
AGENT_COUNT_OFFSET = HEADER_SIZE
AGENTS_START = AGENT_COUNT_OFFSET + COUNT_SIZE
SKILL_RECORD_SIZE = 68  # i32 id + 64 byte name

ARCHIVE_SUFFIXES = {'.zip', '.zevtc'}


# =============================================================================
# HEADER
# =============================================================================

def decode_header(raw: bytes) -> EncounterHeader:
    """
    Validate and decode the 16-byte header.

    4 bytes "EVTC", 8 ASCII digits holding the arcdps build date (YYYYMMDD),
    one byte of combat event revision, the encounter id as a little endian
    u16 and a NUL.
    """
    if len(raw) < HEADER_SIZE:
        raise MalformedHeader(f"Header too short: {len(raw)} bytes")

    if raw[0:4] != EVTC_MAGIC:
        raise MalformedHeader(f"Invalid EVTC magic: {raw[0:4]!r}")

    build = raw[4:12]
    if not build.isdigit():
        raise MalformedHeader(f"Invalid arcdps build: {build!r}")

    revision = raw[12]
    if revision > MAX_REVISION:
        raise UnsupportedRevision(revision)

    if raw[15] != 0:
        raise MalformedHeader("Header is not NUL terminated")

    encounter_id = struct.unpack_from('<H', raw, 13)[0]

    return EncounterHeader(
        build=build.decode('ascii'),
        revision=revision,
        encounter_id=encounter_id,
    )


def parse_header(stream: BinaryIO) -> EncounterHeader:
    try:
        stream.seek(0)
        raw = stream.read(HEADER_SIZE)
    except OSError as e:
        raise IoError(f"Failed to read EVTC header: {e}") from e
    return decode_header(raw)


# =============================================================================
# LAYOUT
# =============================================================================

@dataclass(frozen=True)
class EVTCLayout:
    """Byte offsets of the agent, skill and combat event arrays"""
    revision: int
    file_length: int
    agent_count: int
    skill_count: int

    @property
    def agents_start(self) -> int:
        return AGENTS_START

    @property
    def skill_count_offset(self) -> int:
        return AGENTS_START + self.agent_count * AGENT_RECORD_SIZE

    @property
    def skills_start(self) -> int:
        return self.skill_count_offset + COUNT_SIZE

    @property
    def events_start(self) -> int:
        return self.skills_start + self.skill_count * SKILL_RECORD_SIZE

    @property
    def event_record_size(self) -> int:
        return event_record_size(self.revision)

    @property
    def event_count(self) -> int:
        return (self.file_length - self.events_start) // self.event_record_size

    @classmethod
    def resolve(cls, stream: BinaryIO, revision: int) -> 'EVTCLayout':
        """Read the two counts and check every offset against the file length"""
        try:
            file_length = stream.seek(0, io.SEEK_END)
        except OSError as e:
            raise IoError(f"Failed to size EVTC file: {e}") from e

        agent_count = _read_count(stream, AGENT_COUNT_OFFSET, file_length, 'agent')
        layout = cls(revision, file_length, agent_count, 0)

        skill_count = _read_count(stream, layout.skill_count_offset, file_length, 'skill')
        layout = cls(revision, file_length, agent_count, skill_count)

        if layout.events_start > file_length:
            raise CorruptedFile(
                f"Skill array ends at {layout.events_start}, past end of file ({file_length})"
            )

        remainder = (file_length - layout.events_start) % layout.event_record_size
        if remainder:
            raise CorruptedFile(
                f"Combat event region of {file_length - layout.events_start} bytes is not a "
                f"multiple of {layout.event_record_size} (revision {revision})"
            )

        return layout


def _read_count(stream: BinaryIO, offset: int, file_length: int, what: str) -> int:
    if offset + COUNT_SIZE > file_length:
        raise CorruptedFile(f"{what.capitalize()} count at {offset} is past end of file ({file_length})")
    try:
        stream.seek(offset)
        data = stream.read(COUNT_SIZE)
    except OSError as e:
        raise IoError(f"Failed to read {what} count: {e}") from e
    if len(data) != COUNT_SIZE:
        raise CorruptedFile(f"Truncated {what} count")
    return struct.unpack('<I', data)[0]


# =============================================================================
# ARCHIVES
# =============================================================================

def unwrap_archive(data: bytes) -> bytes:
    """Raw EVTC bytes out of a zip archive or a zlib stream"""
    if data[:4] == EVTC_MAGIC:
        return data

    if data[:2] == b'PK':
        try:
            with zipfile.ZipFile(io.BytesIO(data), 'r') as zf:
                names = zf.namelist()
                if not names:
                    raise MalformedHeader("Archive is empty")
                # Prefer an .evtc member, else the first file
                name = next((n for n in names if n.lower().endswith('.evtc')), names[0])
                return zf.read(name)
        except zipfile.BadZipFile as e:
            raise MalformedHeader(f"Invalid zip archive: {e}") from e

    try:
        return zlib.decompress(data)
    except zlib.error:
        raise MalformedHeader(f"Unknown format (starts with: {data[:4]!r})") from None


# =============================================================================
# EVTC LOG
# =============================================================================

class EVTCLog:
    """
    One open EVTC source with header, layout and lookup tables resolved.

    Each query runs only the scans it needs: single facts come from a
    first-match scan from whichever end they sit closest to, and the full
    summary comes from one forward sweep.
    """

    def __init__(self, stream: BinaryIO, resolver: EncounterResolver):
        self.stream = stream
        self.resolver = resolver

        self.header = parse_header(stream)
        self.layout = EVTCLayout.resolve(stream, self.header.revision)
        self.agents = AgentTable(stream, self.layout.agents_start, self.layout.agent_count)
        self.events = EventStream(stream, self.header.revision,
                                  self.layout.events_start, self.layout.event_count)

        logger.debug(
            f"EVTC{self.header.build} revision {self.header.revision}, "
            f"encounter {self.header.encounter_id}: {self.layout.agent_count} agents, "
            f"{self.layout.skill_count} skills, {self.layout.event_count} events"
        )

    @cached_property
    def encounter(self) -> EncounterInfo:
        return self.resolver.resolve(self.header.encounter_id)

    @cached_property
    def boss_address(self) -> Optional[int]:
        return self.agents.find_boss(self.header.encounter_id)

    def _state(self) -> ParseState:
        return ParseState(boss_address=self.boss_address)

    def last_event_time(self) -> Optional[int]:
        event = self.events.last()
        return event.time if event is not None else None

    # -------------------------------------------------------------------------
    # Single facts
    # -------------------------------------------------------------------------

    def success(self) -> bool:
        """Reward events sit near the end, so scan backward"""
        state = ParseState()
        scan_first(self.events.backward(), state, parse_reward)
        return state.success

    def start_state(self) -> ParseState:
        state = ParseState()
        scan_first(self.events.forward(), state, parse_log_start)
        return state

    def start_time(self) -> Optional[int]:
        return self.start_state().server_start

    def local_start_time(self) -> Optional[int]:
        return self.start_state().local_start

    def end_time(self) -> Optional[int]:
        state = ParseState()
        scan_first(self.events.backward(), state, parse_log_end)
        return state.server_end

    def local_end_time(self) -> Optional[int]:
        state = ParseState()
        scan_first(self.events.backward(), state, parse_precise_end)
        if state.precise_end is not None:
            return state.precise_end
        return self.last_event_time()

    def duration(self) -> Optional[int]:
        start = self.local_start_time()
        end = self.local_end_time()
        if start is None or end is None or end < start:
            return None
        return end - start

    def boss_max_health(self) -> Optional[int]:
        state = self._state()
        if state.boss_address is not None:
            scan_first(self.events.forward(), state, parse_boss_max_health)
        return state.boss_max_health

    def cm_status(self) -> CMStatus:
        # Only health based policies need the event scan
        if self.encounter.cm_policy is not CMPolicy.HEALTH_BASED:
            return EncounterResolver.evaluate_cm(self.encounter, None)
        return EncounterResolver.evaluate_cm(self.encounter, self.boss_max_health())

    def players(self, with_guilds: bool = True) -> List[PlayerDetails]:
        players = self.agents.players()
        if with_guilds and players:
            state = ParseState(players={p.address: p for p in players})
            sweep(self.events.forward(), state, (parse_guild,))
        return players

    # -------------------------------------------------------------------------
    # Full summary
    # -------------------------------------------------------------------------

    def summarize(self) -> ParsedSummary:
        players = self.agents.players()
        state = self._state()
        state.players = {p.address: p for p in players}

        sweep(self.events.forward(), state, ALL_PARSERS)

        summary = build_summary(
            header=self.header,
            info=self.encounter,
            state=state,
            players=players,
            event_count=self.layout.event_count,
            last_event_time=self.last_event_time(),
        )
        logger.info(
            f"Parsed {summary.encounter_name}: {len(players)} players, "
            f"{summary.event_count} events, success={summary.success}, cm={summary.is_cm.value}"
        )
        return summary


# =============================================================================
# EVTC PARSER
# =============================================================================

class EVTCParser:
    """
    Entry point for parsing EVTC sources.

    Holds only the read-only encounter table, so one instance can serve any
    number of independent parses.
    """

    def __init__(self, encounters: Optional[Mapping[int, EncounterInfo]] = None):
        self.resolver = EncounterResolver(encounters if encounters is not None else get_encounter_table())

    @contextmanager
    def open(self, filepath: Union[str, Path]) -> Iterator[EVTCLog]:
        """Open an EVTC file (supports .evtc, .zevtc, .zip); closed on exit"""
        path = Path(filepath)
        try:
            if path.suffix.lower() in ARCHIVE_SUFFIXES:
                stream = io.BytesIO(unwrap_archive(path.read_bytes()))
            else:
                stream = open(path, 'rb')
        except OSError as e:
            raise IoError(f"Failed to open {path}: {e}") from e

        with stream:
            yield EVTCLog(stream, self.resolver)

    @contextmanager
    def open_bytes(self, data: bytes) -> Iterator[EVTCLog]:
        with io.BytesIO(unwrap_archive(data)) as stream:
            yield EVTCLog(stream, self.resolver)

    def parse_file(self, filepath: Union[str, Path]) -> ParsedSummary:
        with self.open(filepath) as log:
            return log.summarize()

    def parse_bytes(self, data: bytes) -> ParsedSummary:
        with self.open_bytes(data) as log:
            return log.summarize()

    def parse_stream(self, stream: BinaryIO) -> ParsedSummary:
        """Parse an already open, seekable binary stream (left open)"""
        return EVTCLog(stream, self.resolver).summarize()
