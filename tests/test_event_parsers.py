"""
Tests for combat event classification and scans
"""

from agents import PlayerDetails
from event_parsers import (
    ALL_PARSERS, ARCDPS_SRC_AGENT, ParseState, parse_boss_max_health,
    parse_guild, parse_log_end, parse_log_start, parse_precise_end,
    parse_reward, scan_first, sweep,
)
from events import CombatEvent, StateChange


def event(time=0, src_agent=0, dst_agent=0, value=0, buff_dmg=0, statechange=StateChange.NONE):
    return CombatEvent(time=time, src_agent=src_agent, dst_agent=dst_agent,
                       value=value, buff_dmg=buff_dmg, is_statechange=statechange)


def arc(statechange, time, value=0):
    return event(time=time, src_agent=ARCDPS_SRC_AGENT, value=value, statechange=statechange)


class TestLogStartEnd:

    def test_log_start(self):
        state = ParseState()
        assert parse_log_start(state, arc(StateChange.LOG_START, 100, 1546300800))
        assert state.local_start == 100
        assert state.server_start == 1546300800

    def test_log_start_requires_arcdps_source(self):
        state = ParseState()
        assert not parse_log_start(state, event(time=1, src_agent=5, statechange=StateChange.LOG_START))
        assert state.local_start is None

    def test_first_log_start_wins(self):
        state = sweep([arc(StateChange.LOG_START, 1, 10), arc(StateChange.LOG_START, 2, 20)], ParseState())
        assert (state.local_start, state.server_start) == (1, 10)

    def test_server_time_is_unsigned(self):
        state = ParseState()
        parse_log_end(state, arc(StateChange.LOG_END, 5, -1))
        assert state.server_end == 0xFFFFFFFF
        assert state.log_end_time == 5

    def test_last_log_end_wins(self):
        state = sweep([arc(StateChange.LOG_END, 1, 10), arc(StateChange.LOG_END, 2, 20)], ParseState())
        assert (state.log_end_time, state.server_end) == (2, 20)

    def test_other_events_ignored(self):
        state = ParseState()
        assert not parse_log_end(state, event(time=5, value=100))
        assert state.log_end_time is None


class TestEndTime:
    """End time resolution scanning backward"""

    def test_reward_takes_precedence_over_log_end(self):
        events = [arc(StateChange.LOG_START, 10), event(time=100, statechange=StateChange.REWARD),
                  arc(StateChange.LOG_END, 200, 77)]
        state = ParseState()
        matched = scan_first(reversed(events), state, parse_precise_end)
        assert matched.time == 100
        assert state.precise_end == 100
        assert state.success is True
        assert state.log_end_time == 200
        assert state.server_end == 77

    def test_log_end_without_reward(self):
        events = [arc(StateChange.LOG_START, 10), arc(StateChange.LOG_END, 200)]
        state = ParseState()
        assert scan_first(reversed(events), state, parse_precise_end) is None
        assert state.precise_end == 200
        assert state.success is False

    def test_latest_log_end_kept_backward(self):
        events = [arc(StateChange.LOG_END, 100), arc(StateChange.LOG_END, 200)]
        state = ParseState()
        scan_first(reversed(events), state, parse_precise_end)
        assert state.precise_end == 200

    def test_reward(self):
        state = ParseState()
        assert parse_reward(state, event(time=42, statechange=StateChange.REWARD))
        assert state.success and state.reward_time == 42


class TestBossMaxHealth:

    def test_needs_boss_address(self):
        state = ParseState()
        assert not parse_boss_max_health(state, event(src_agent=1, dst_agent=500,
                                                      statechange=StateChange.MAX_HEALTH_UPDATE))

    def test_only_boss_events(self):
        state = ParseState(boss_address=1)
        assert not parse_boss_max_health(state, event(src_agent=2, dst_agent=500,
                                                      statechange=StateChange.MAX_HEALTH_UPDATE))
        assert parse_boss_max_health(state, event(src_agent=1, dst_agent=600,
                                                  statechange=StateChange.MAX_HEALTH_UPDATE))
        assert state.boss_max_health == 600

    def test_first_update_wins(self):
        events = [event(src_agent=1, dst_agent=h, statechange=StateChange.MAX_HEALTH_UPDATE)
                  for h in (600, 700)]
        state = sweep(events, ParseState(boss_address=1))
        assert state.boss_max_health == 600


class TestGuild:

    def test_guild_attached_to_player(self):
        player = PlayerDetails("Char", "Acc.1", "1", address=9)
        state = ParseState(players={9: player})
        raw_event = event(src_agent=9, dst_agent=0x0003000200000001, value=0x78563412,
                          buff_dmg=-0x0F214366, statechange=StateChange.GUILD)
        assert parse_guild(state, raw_event)
        assert str(player.guild) == "00000001-0002-0003-1234-56789ABCDEF0"

    def test_unknown_player_still_consumed(self):
        state = ParseState()
        assert parse_guild(state, event(src_agent=9, statechange=StateChange.GUILD))


def test_sweep_collects_everything():
    events = [
        arc(StateChange.LOG_START, 10, 1000),
        event(time=20, src_agent=1, dst_agent=999, statechange=StateChange.MAX_HEALTH_UPDATE),
        event(time=30, src_agent=1, dst_agent=2, value=50),
        event(time=40, statechange=StateChange.REWARD),
        arc(StateChange.LOG_END, 50, 1100),
    ]
    state = sweep(events, ParseState(boss_address=1), ALL_PARSERS)
    assert state.local_start == 10
    assert state.boss_max_health == 999
    assert state.reward_time == 40
    assert state.log_end_time == 50
    assert (state.server_start, state.server_end) == (1000, 1100)
    assert state.success is True


def test_scan_first_stops_at_match():
    seen = []

    def parser(state, ev):
        seen.append(ev.time)
        return ev.time == 2

    events = [event(time=t) for t in range(5)]
    assert scan_first(events, ParseState(), parser).time == 2
    assert seen == [0, 1, 2]
