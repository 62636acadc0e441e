"""
EVTC Summary - Combat event decoding

Both combat event revisions are read through an explicit field offset table and
normalized into one CombatEvent shape. Events are decoded one at a time by
seeking into the file, the event array is never loaded as a whole.
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO, Dict, Iterator, Optional, Tuple

from exceptions import CorruptedFile, IoError, UnsupportedRevision


# =============================================================================
# STATECHANGE ENUM
# =============================================================================

class StateChange(IntEnum):
    NONE = 0
    ENTER_COMBAT = 1
    EXIT_COMBAT = 2
    CHANGE_UP = 3
    CHANGE_DEAD = 4
    CHANGE_DOWN = 5
    SPAWN = 6
    DESPAWN = 7
    HEALTH_UPDATE = 8
    LOG_START = 9
    LOG_END = 10
    WEAPON_SWAP = 11
    MAX_HEALTH_UPDATE = 12
    POINT_OF_VIEW = 13
    LANGUAGE = 14
    GW_BUILD = 15
    SHARD_ID = 16
    REWARD = 17
    BUFF_INITIAL = 18
    POSITION = 19
    VELOCITY = 20
    FACING = 21
    TEAM_CHANGE = 22
    ATTACK_TARGET = 23
    TARGETABLE = 24
    MAP_ID = 25
    REPL_INFO = 26
    STACK_ACTIVE = 27
    STACK_RESET = 28
    GUILD = 29


class IFF(IntEnum):
    FRIEND = 0
    FOE = 1
    UNKNOWN = 2


# =============================================================================
# RECORD LAYOUTS
# =============================================================================

REVISION_0 = 0
REVISION_1 = 1
MAX_REVISION = REVISION_1

# On-disk width of one combat event record, by revision
EVENT_RECORD_SIZES: Dict[int, int] = {
    REVISION_0: 64,
    REVISION_1: 64,
}

# field -> (offset, struct format), by revision. Revision 0 stores skill id and
# overstack as u16, carries internal tracking bytes at 42-50 and has no
# dst_master_instid or offcycle flag.
EVENT_FIELD_OFFSETS: Dict[int, Dict[str, Tuple[int, str]]] = {
    REVISION_0: {
        'time': (0, 'Q'),
        'src_agent': (8, 'Q'),
        'dst_agent': (16, 'Q'),
        'value': (24, 'i'),
        'buff_dmg': (28, 'i'),
        'overstack_value': (32, 'H'),
        'skill_id': (34, 'H'),
        'src_instid': (36, 'H'),
        'dst_instid': (38, 'H'),
        'src_master_instid': (40, 'H'),
        'iff': (51, 'B'),
        'buff': (52, 'B'),
        'result': (53, 'B'),
        'is_activation': (54, 'B'),
        'is_buffremove': (55, 'B'),
        'is_ninety': (56, 'B'),
        'is_fifty': (57, 'B'),
        'is_moving': (58, 'B'),
        'is_statechange': (59, 'B'),
        'is_flanking': (60, 'B'),
        'is_shields': (61, 'B'),
    },
    REVISION_1: {
        'time': (0, 'Q'),
        'src_agent': (8, 'Q'),
        'dst_agent': (16, 'Q'),
        'value': (24, 'i'),
        'buff_dmg': (28, 'i'),
        'overstack_value': (32, 'I'),
        'skill_id': (36, 'I'),
        'src_instid': (40, 'H'),
        'dst_instid': (42, 'H'),
        'src_master_instid': (44, 'H'),
        'dst_master_instid': (46, 'H'),
        'iff': (48, 'B'),
        'buff': (49, 'B'),
        'result': (50, 'B'),
        'is_activation': (51, 'B'),
        'is_buffremove': (52, 'B'),
        'is_ninety': (53, 'B'),
        'is_fifty': (54, 'B'),
        'is_moving': (55, 'B'),
        'is_statechange': (56, 'B'),
        'is_flanking': (57, 'B'),
        'is_shields': (58, 'B'),
        'is_offcycle': (59, 'B'),
    },
}

_FLAG_FIELDS = ('is_ninety', 'is_fifty', 'is_moving', 'is_flanking', 'is_shields', 'is_offcycle')


def event_record_size(revision: int) -> int:
    """Width in bytes of one combat event for a header revision"""
    try:
        return EVENT_RECORD_SIZES[revision]
    except KeyError:
        raise UnsupportedRevision(revision) from None


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class CombatEvent:
    """Combat event from EVTC, independent of the on-disk revision"""
    time: int
    src_agent: int
    dst_agent: int
    value: int
    buff_dmg: int
    overstack_value: int = 0
    skill_id: int = 0
    src_instid: int = 0
    dst_instid: int = 0
    src_master_instid: int = 0
    dst_master_instid: int = 0
    iff: int = IFF.FRIEND
    buff: int = 0
    result: int = 0
    is_activation: int = 0
    is_buffremove: int = 0
    is_statechange: int = StateChange.NONE
    is_ninety: bool = False
    is_fifty: bool = False
    is_moving: bool = False
    is_flanking: bool = False
    is_shields: bool = False
    is_offcycle: bool = False

    @classmethod
    def decode(cls, data: bytes, revision: int) -> 'CombatEvent':
        """Decode one raw record of the given revision"""
        fields = {}
        for name, (offset, fmt) in EVENT_FIELD_OFFSETS[revision].items():
            fields[name] = struct.unpack_from('<' + fmt, data, offset)[0]
        for name in _FLAG_FIELDS:
            if name in fields:
                fields[name] = bool(fields[name])
        return cls(**fields)

    @property
    def statechange(self) -> int:
        return self.is_statechange


@dataclass(frozen=True)
class GuildIdentifier:
    """
    16-byte guild id carried by a GUILD statechange event.

    The bytes overlay dst_agent, value and buff_dmg. p1-p3 are stored little
    endian, p4-p6 big endian; the fields here hold the canonical values.
    """
    p1: int
    p2: int
    p3: int
    p4: int
    p5: int
    p6: int

    @classmethod
    def from_bytes(cls, raw: bytes) -> 'GuildIdentifier':
        if len(raw) != 16:
            raise ValueError(f"Guild identifier must be 16 bytes, got {len(raw)}")
        p1, p2, p3 = struct.unpack_from('<IHH', raw, 0)
        p4, p5, p6 = struct.unpack_from('>HHI', raw, 8)
        return cls(p1, p2, p3, p4, p5, p6)

    @classmethod
    def from_event(cls, event: CombatEvent) -> 'GuildIdentifier':
        raw = struct.pack('<Qii', event.dst_agent, event.value, event.buff_dmg)
        return cls.from_bytes(raw)

    def __str__(self) -> str:
        # GW2 API form: 8-4-4-4-12
        return f"{self.p1:08X}-{self.p2:04X}-{self.p3:04X}-{self.p4:04X}-{self.p5:04X}{self.p6:08X}"


# =============================================================================
# EVENT STREAM
# =============================================================================

class EventStream:
    """
    Random access reader over the combat event array of an open EVTC file.

    Every read seeks to the record and decodes it; nothing is cached, so
    memory use does not grow with the number of events.
    """

    def __init__(self, stream: BinaryIO, revision: int, start: int, count: int):
        self.stream = stream
        self.revision = revision
        self.start = start
        self.count = count
        self.record_size = event_record_size(revision)

    def __len__(self) -> int:
        return self.count

    def read(self, index: int) -> CombatEvent:
        """Fetch the event at index (0 <= index < count)"""
        if not 0 <= index < self.count:
            raise IndexError(f"Combat event index {index} out of range (count={self.count})")

        try:
            self.stream.seek(self.start + index * self.record_size)
            data = self.stream.read(self.record_size)
        except OSError as e:
            raise IoError(f"Failed to read combat event {index}: {e}") from e

        if len(data) != self.record_size:
            raise CorruptedFile(f"Truncated combat event {index}")

        return CombatEvent.decode(data, self.revision)

    __getitem__ = read

    def forward(self, start: int = 0) -> Iterator[CombatEvent]:
        for index in range(start, self.count):
            yield self.read(index)

    def backward(self) -> Iterator[CombatEvent]:
        for index in range(self.count - 1, -1, -1):
            yield self.read(index)

    __iter__ = forward

    def last(self) -> Optional[CombatEvent]:
        if not self.count:
            return None
        return self.read(self.count - 1)
