"""
EVTC Summary - Data Models
Immutable records handed to formatting, the CLI and the API
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class CMStatus(str, Enum):
    """Challenge mote verdict"""
    NO = "NO"
    YES = "YES"
    UNKNOWN = "UNKNOWN"


class EncounterHeader(BaseModel):
    """Decoded 16-byte EVTC header"""
    model_config = ConfigDict(frozen=True)

    build: str  # arcdps build date, YYYYMMDD
    revision: int
    encounter_id: int

    @property
    def arcdps_version(self) -> str:
        return f"EVTC{self.build}"


class PlayerSummary(BaseModel):
    """One player of the encounter"""
    model_config = ConfigDict(frozen=True)

    account: str
    character: str
    subgroup: str
    address: int
    guild: Optional[str] = None


class ParsedSummary(BaseModel):
    """Everything extracted from one EVTC file"""
    model_config = ConfigDict(frozen=True)

    header: EncounterHeader
    encounter_name: str
    location: str
    is_cm: CMStatus

    boss_address: Optional[int] = None
    boss_max_health: Optional[int] = None
    success: bool = False

    # Server epoch seconds
    server_start: Optional[int] = None
    server_end: Optional[int] = None

    # Local precise timestamps (ms)
    local_start: Optional[int] = None
    local_end: Optional[int] = None
    last_event_time: Optional[int] = None
    reward_time: Optional[int] = None
    log_end_time: Optional[int] = None

    event_count: int = 0
    players: Tuple[PlayerSummary, ...] = ()

    @property
    def duration(self) -> Optional[int]:
        """Encounter length in ms, only when end is not before start"""
        if self.local_start is None or self.local_end is None:
            return None
        if self.local_end < self.local_start:
            return None
        return self.local_end - self.local_start
