"""
EVTC Summary - Summary builder
"""

from typing import List, Optional

from agents import PlayerDetails
from encounters import EncounterInfo, EncounterResolver
from event_parsers import ParseState
from models import EncounterHeader, ParsedSummary, PlayerSummary


def resolve_end_time(state: ParseState, last_event_time: Optional[int]) -> Optional[int]:
    """Reward time if the encounter was won, else log end, else the last event"""
    if state.reward_time is not None:
        return state.reward_time
    if state.log_end_time is not None:
        return state.log_end_time
    return last_event_time


def player_summary(player: PlayerDetails) -> PlayerSummary:
    return PlayerSummary(
        account=player.account,
        character=player.character,
        subgroup=player.subgroup,
        address=player.address,
        guild=str(player.guild) if player.guild is not None else None,
    )


def build_summary(header: EncounterHeader, info: EncounterInfo, state: ParseState,
                  players: List[PlayerDetails], event_count: int,
                  last_event_time: Optional[int]) -> ParsedSummary:
    """Combine everything gathered during a parse into the final record"""
    return ParsedSummary(
        header=header,
        encounter_name=info.name,
        location=info.location,
        is_cm=EncounterResolver.evaluate_cm(info, state.boss_max_health),
        boss_address=state.boss_address,
        boss_max_health=state.boss_max_health,
        success=state.success,
        server_start=state.server_start,
        server_end=state.server_end,
        local_start=state.local_start,
        local_end=resolve_end_time(state, last_event_time),
        last_event_time=last_event_time,
        reward_time=state.reward_time,
        log_end_time=state.log_end_time,
        event_count=event_count,
        players=tuple(player_summary(p) for p in players),
    )
