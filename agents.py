"""
EVTC Summary - Agent table
Decodes the fixed-size agent records and picks out players and the boss
"""

import struct
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Tuple

from events import GuildIdentifier
from exceptions import CorruptedFile, IoError, MalformedAgent
from logger import get_logger

logger = get_logger('agents')

AGENT_STRUCT = struct.Struct('<QIIHHHHHH64s4x')
AGENT_RECORD_SIZE = AGENT_STRUCT.size  # 96
NAME_BLOB_SIZE = 64

# is_elite value indicating a non-player object
NON_PLAYER_ELITE = 0xFFFFFFFF

# upper bits of profession marking a gadget
GADGET_MASK = 0xFFFF0000

# lower bits of profession holding the species id
SPECIES_ID_MASK = 0x0000FFFF


@dataclass
class AgentRecord:
    """Agent (player, NPC, or gadget) from EVTC"""
    address: int
    profession: int
    elite: int
    toughness: int
    concentration: int
    healing: int
    hitbox_width: int
    condition: int
    hitbox_height: int
    name_blob: bytes

    @classmethod
    def decode(cls, data: bytes) -> 'AgentRecord':
        return cls(*AGENT_STRUCT.unpack(data))

    @property
    def is_player(self) -> bool:
        return self.elite != NON_PLAYER_ELITE

    @property
    def is_gadget(self) -> bool:
        return not self.is_player and (self.profession & GADGET_MASK) == GADGET_MASK

    @property
    def species_id(self) -> int:
        return self.profession & SPECIES_ID_MASK

    @property
    def name(self) -> str:
        """First segment of the name blob; the full name for NPCs and gadgets"""
        return self.name_blob.split(b'\x00', 1)[0].decode('utf-8', errors='replace')


@dataclass
class PlayerDetails:
    """Player identity extracted from an agent record"""
    character: str
    account: str
    subgroup: str
    address: int
    guild: Optional[GuildIdentifier] = field(default=None)


def split_name_blob(blob: bytes) -> Tuple[str, str, str]:
    """
    Split a player name blob into (character, account, subgroup).

    The blob holds three consecutive NUL-terminated UTF-8 strings. The account
    name is stored with a leading ':' which is removed here.
    """
    parts = blob[:NAME_BLOB_SIZE].split(b'\x00', 3)
    if len(parts) < 4:
        raise MalformedAgent(
            f"Agent name blob has {len(parts) - 1} NUL terminators, expected 3"
        )

    character, account, subgroup = (p.decode('utf-8', errors='replace') for p in parts[:3])
    if account.startswith(':'):
        account = account[1:]

    return character, account, subgroup


class AgentTable:
    """Random access reader over the agent array"""

    def __init__(self, stream: BinaryIO, start: int, count: int):
        self.stream = stream
        self.start = start
        self.count = count

    def __len__(self) -> int:
        return self.count

    def read(self, index: int) -> AgentRecord:
        if not 0 <= index < self.count:
            raise IndexError(f"Agent index {index} out of range (count={self.count})")

        try:
            self.stream.seek(self.start + index * AGENT_RECORD_SIZE)
            data = self.stream.read(AGENT_RECORD_SIZE)
        except OSError as e:
            raise IoError(f"Failed to read agent {index}: {e}") from e

        if len(data) != AGENT_RECORD_SIZE:
            raise CorruptedFile(f"Truncated agent record {index}")

        return AgentRecord.decode(data)

    def __iter__(self):
        for index in range(self.count):
            yield self.read(index)

    def players(self) -> List[PlayerDetails]:
        """All player agents, in file order"""
        players = []
        for agent in self:
            if not agent.is_player:
                continue
            try:
                character, account, subgroup = split_name_blob(agent.name_blob)
            except MalformedAgent as e:
                raise MalformedAgent(f"Agent {agent.address:#x}: {e}") from None
            players.append(PlayerDetails(
                character=character,
                account=account,
                subgroup=subgroup,
                address=agent.address,
            ))
        return players

    def find_boss(self, encounter_id: int) -> Optional[int]:
        """
        Address of the first non-gadget NPC whose species id matches the
        encounter id, or None.
        """
        for agent in self:
            if agent.is_player or agent.is_gadget:
                continue
            if agent.species_id == encounter_id:
                logger.debug(f"Boss agent {agent.address:#x} ({agent.name})")
                return agent.address

        logger.warning(f"No boss agent found for encounter {encounter_id}")
        return None
