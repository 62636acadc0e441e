"""
Tests for the EVTC parser: whole-file summaries and single-fact queries
"""

import io
import zipfile
import zlib

import pytest

from builders import (
    DEIMOS_ID, build_evtc, damage, log_end, log_start, max_health, npc_agent,
    player_agent, reward,
)
from conftest import BOSS_ADDRESS, PLAYER_ONE
from exceptions import CorruptedFile, IoError, MalformedHeader
from models import CMStatus
from parser import EVTCParser, unwrap_archive


@pytest.fixture
def parser():
    return EVTCParser()


def deimos_with_health(health=None, events=()):
    agents = [player_agent(PLAYER_ONE, "Char", "Acc.1"), npc_agent(BOSS_ADDRESS, DEIMOS_ID, "Deimos")]
    evs = [log_start(10, 1546300800)]
    if health is not None:
        evs.append(max_health(BOSS_ADDRESS, health, 11))
    evs.extend(events)
    return build_evtc(encounter_id=DEIMOS_ID, agents=agents, events=evs)


class TestSummary:
    """Full forward sweep"""

    def test_minimal_file(self, parser, minimal_evtc):
        summary = parser.parse_bytes(minimal_evtc)
        assert summary.header.arcdps_version == "EVTC20190101"
        assert summary.encounter_name == "Soulless Horror"
        assert summary.event_count == 0
        assert summary.players == ()
        assert summary.success is False
        assert summary.boss_address is None
        assert summary.local_end is None
        assert summary.duration is None
        assert summary.is_cm == CMStatus.UNKNOWN

    def test_complete_log(self, parser, deimos_evtc):
        summary = parser.parse_bytes(deimos_evtc)
        assert summary.encounter_name == "Deimos"
        assert summary.location == "4"
        assert summary.boss_address == BOSS_ADDRESS
        assert summary.boss_max_health == 42000000
        assert summary.is_cm == CMStatus.YES
        assert summary.success is True
        assert summary.server_start == 1546300800
        assert summary.server_end == 1546300900
        assert summary.local_start == 1000
        assert summary.local_end == 5000
        assert summary.reward_time == 5000
        assert summary.log_end_time == 6000
        assert summary.last_event_time == 6000
        assert summary.duration == 4000
        assert summary.event_count == 5

    def test_players(self, parser, deimos_evtc):
        players = parser.parse_bytes(deimos_evtc).players
        assert [p.account for p in players] == ["Some.1234", "Other.5678"]
        assert [p.character for p in players] == ["Some Character", "Other Character"]
        assert players[0].guild == "00000001-0002-0003-1234-56789ABCDEF0"
        assert players[1].guild is None

    def test_idempotent(self, parser, deimos_evtc):
        assert parser.parse_bytes(deimos_evtc) == parser.parse_bytes(deimos_evtc)

    def test_log_end_without_reward(self, parser):
        summary = parser.parse_bytes(deimos_with_health(events=[damage(20, 1, 2), log_end(30, 1546300805)]))
        assert summary.success is False
        assert summary.local_end == 30
        assert summary.duration == 20

    def test_last_event_when_no_end_marker(self, parser):
        summary = parser.parse_bytes(deimos_with_health(events=[damage(20, 1, 2), damage(45, 1, 2)]))
        assert summary.local_end == 45
        assert summary.server_end is None

    def test_no_duration_when_end_precedes_start(self, parser):
        data = build_evtc(events=[log_start(5000, 1), reward(100)])
        summary = parser.parse_bytes(data)
        assert summary.local_end == 100
        assert summary.duration is None

    def test_unknown_encounter(self, parser):
        summary = parser.parse_bytes(build_evtc(encounter_id=0x1234))
        assert summary.encounter_name == "Unknown encounter 4660"
        assert summary.location == "Unknown"
        assert summary.is_cm == CMStatus.UNKNOWN

    @pytest.mark.parametrize("health,expected", [
        (40000000, CMStatus.YES),
        (39999999, CMStatus.NO),
        (None, CMStatus.UNKNOWN),
    ])
    def test_health_based_cm(self, parser, health, expected):
        assert parser.parse_bytes(deimos_with_health(health)).is_cm == expected

    def test_revision_zero(self, parser, deimos_agents, deimos_events):
        data = build_evtc(revision=0, encounter_id=DEIMOS_ID, agents=deimos_agents, events=deimos_events)
        summary = parser.parse_bytes(data)
        assert summary.header.revision == 0
        assert summary.success is True
        assert summary.boss_max_health == 42000000
        assert summary.players[0].guild is not None


class TestSingleFacts:
    """Targeted scans agree with the full summary"""

    def test_facts_match_summary(self, parser, deimos_evtc):
        summary = parser.parse_bytes(deimos_evtc)
        with parser.open_bytes(deimos_evtc) as log:
            assert log.success() == summary.success
            assert log.start_time() == summary.server_start
            assert log.end_time() == summary.server_end
            assert log.local_start_time() == summary.local_start
            assert log.local_end_time() == summary.local_end
            assert log.duration() == summary.duration
            assert log.boss_max_health() == summary.boss_max_health
            assert log.cm_status() == summary.is_cm

    def test_players_without_guild_scan(self, parser, deimos_evtc):
        with parser.open_bytes(deimos_evtc) as log:
            assert log.players(with_guilds=False)[0].guild is None
            assert str(log.players()[0].guild) == "00000001-0002-0003-1234-56789ABCDEF0"

    def test_local_end_falls_back_to_last_event(self, parser):
        with parser.open_bytes(deimos_with_health(events=[damage(77, 1, 2)])) as log:
            assert log.local_end_time() == 77
            assert log.success() is False

    def test_empty_log(self, parser, minimal_evtc):
        with parser.open_bytes(minimal_evtc) as log:
            assert log.local_end_time() is None
            assert log.duration() is None
            assert log.start_time() is None


class TestInputs:
    """Files, archives and broken input"""

    def test_parse_file(self, parser, deimos_evtc, tmp_path):
        path = tmp_path / "20190101-120000.evtc"
        path.write_bytes(deimos_evtc)
        assert parser.parse_file(path).success is True

    def test_parse_zevtc_file(self, parser, deimos_evtc, tmp_path):
        path = tmp_path / "20190101-120000.zevtc"
        with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("20190101-120000", deimos_evtc)
        assert parser.parse_file(path).encounter_name == "Deimos"

    def test_zip_bytes_prefer_evtc_member(self, parser, deimos_evtc):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("readme.txt", b"not a log")
            zf.writestr("fight.evtc", deimos_evtc)
        assert parser.parse_bytes(buffer.getvalue()).encounter_name == "Deimos"

    def test_zlib_bytes(self, deimos_evtc):
        assert unwrap_archive(zlib.compress(deimos_evtc)) == deimos_evtc

    def test_garbage_is_malformed(self, parser):
        with pytest.raises(MalformedHeader):
            parser.parse_bytes(b"definitely not a combat log")

    def test_parse_stream_leaves_stream_open(self, parser, deimos_evtc):
        stream = io.BytesIO(deimos_evtc)
        parser.parse_stream(stream)
        assert not stream.closed

    def test_corrupted_event_region(self, parser):
        with pytest.raises(CorruptedFile):
            parser.parse_bytes(build_evtc(trailing=b"\x00" * 3))

    def test_missing_file(self, parser, tmp_path):
        with pytest.raises(IoError) as exc_info:
            parser.parse_file(tmp_path / "missing.evtc")
        assert isinstance(exc_info.value, OSError)


def test_repeated_log_end_agrees_with_single_facts(parser):
    """The summary and the single-fact scans both keep the last LOGEND"""
    data = build_evtc(events=[
        log_start(1000, 100), log_end(2000, 200), damage(2500, 1, 2), log_end(3000, 300),
    ])
    summary = parser.parse_bytes(data)
    assert (summary.server_end, summary.local_end, summary.duration) == (300, 3000, 2000)
    with parser.open_bytes(data) as log:
        assert log.end_time() == summary.server_end
        assert log.local_end_time() == summary.local_end
        assert log.duration() == summary.duration
