"""
EVTC Summary - Combat event classification

Each parser looks at one combat event, and when the event is the kind it
handles, records what it carries in the ParseState and returns True.
Parsers do not know the scan direction; the caller chooses between a full
forward sweep and a first-match scan from either end.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Sequence

from agents import PlayerDetails
from events import CombatEvent, GuildIdentifier, StateChange

# src_agent of events emitted by arcdps itself ("arc")
ARCDPS_SRC_AGENT = 0x637261


@dataclass
class ParseState:
    """Facts gathered from the combat events of one log"""
    boss_address: Optional[int] = None
    players: Dict[int, PlayerDetails] = field(default_factory=dict)

    server_start: Optional[int] = None
    server_end: Optional[int] = None
    local_start: Optional[int] = None
    log_end_time: Optional[int] = None
    reward_time: Optional[int] = None
    precise_end: Optional[int] = None
    boss_max_health: Optional[int] = None
    success: bool = False


EventParser = Callable[[ParseState, CombatEvent], bool]


def _arcdps_statechange(event: CombatEvent, statechange: StateChange) -> bool:
    return event.is_statechange == statechange and event.src_agent == ARCDPS_SRC_AGENT


def parse_log_start(state: ParseState, event: CombatEvent) -> bool:
    """LOGSTART: server epoch start (value) and local start time"""
    if not _arcdps_statechange(event, StateChange.LOG_START):
        return False
    if state.local_start is None:
        state.server_start = event.value & 0xFFFFFFFF
        state.local_start = event.time
    return True


def parse_log_end(state: ParseState, event: CombatEvent) -> bool:
    """LOGEND: server epoch end (value) and local end time; the last one wins"""
    if not _arcdps_statechange(event, StateChange.LOG_END):
        return False
    state.server_end = event.value & 0xFFFFFFFF
    state.log_end_time = event.time
    return True


def parse_reward(state: ParseState, event: CombatEvent) -> bool:
    """REWARD: the encounter was completed successfully"""
    if event.is_statechange != StateChange.REWARD:
        return False
    state.success = True
    state.reward_time = event.time
    return True


def parse_precise_end(state: ParseState, event: CombatEvent) -> bool:
    """
    Backward-scan end time resolution.

    A LOGEND only proposes an end time when none is known yet and the scan
    goes on. A REWARD always wins: it sets the end time and ends the scan.
    Returns True when the scan should stop.
    """
    if event.is_statechange == StateChange.REWARD:
        state.success = True
        state.reward_time = event.time
        state.precise_end = event.time
        return True

    if _arcdps_statechange(event, StateChange.LOG_END):
        if state.precise_end is None:
            state.precise_end = event.time
        if state.log_end_time is None:
            state.server_end = event.value & 0xFFFFFFFF
            state.log_end_time = event.time

    return False


def parse_boss_max_health(state: ParseState, event: CombatEvent) -> bool:
    """MAXHEALTHUPDATE for the boss agent: dst_agent is the new max health"""
    if state.boss_address is None:
        return False
    if event.is_statechange != StateChange.MAX_HEALTH_UPDATE or event.src_agent != state.boss_address:
        return False
    if state.boss_max_health is None:
        state.boss_max_health = event.dst_agent
    return True


def parse_guild(state: ParseState, event: CombatEvent) -> bool:
    """GUILD: attach the guild id to the matching player"""
    if event.is_statechange != StateChange.GUILD:
        return False
    player = state.players.get(event.src_agent)
    if player is not None:
        player.guild = GuildIdentifier.from_event(event)
    return True


# Parsers used for a full forward sweep, in priority order
ALL_PARSERS: Sequence[EventParser] = (
    parse_reward,
    parse_log_start,
    parse_log_end,
    parse_boss_max_health,
    parse_guild,
)


# =============================================================================
# SCANS
# =============================================================================

def sweep(events: Iterable[CombatEvent], state: ParseState,
          parsers: Sequence[EventParser] = ALL_PARSERS) -> ParseState:
    """Apply parsers to every event; the first parser to match an event wins it"""
    for event in events:
        for parser in parsers:
            if parser(state, event):
                break
    return state


def scan_first(events: Iterable[CombatEvent], state: ParseState,
               parser: EventParser) -> Optional[CombatEvent]:
    """Run one parser until it matches; returns the matching event"""
    for event in events:
        if parser(state, event):
            return event
    return None

