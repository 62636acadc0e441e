"""
Pytest configuration and fixtures for EVTC Summary tests
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Keep log files and the history database out of the working tree
_scratch = tempfile.mkdtemp(prefix="evtc-summary-tests-")
os.environ.setdefault("EVTC_LOGS_DIR", os.path.join(_scratch, "logs"))
os.environ.setdefault("EVTC_DATA_DIR", os.path.join(_scratch, "data"))

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from builders import (  # noqa: E402
    DEIMOS_ID, build_evtc, gadget_agent, guild_event, log_end, log_start,
    max_health, npc_agent, player_agent, reward,
)

BOSS_ADDRESS = 0x100
PLAYER_ONE = 0x200
PLAYER_TWO = 0x201

GUILD_BYTES = bytes.fromhex("01000000" "0200" "0300" "1234" "5678" "9ABCDEF0")


@pytest.fixture
def minimal_evtc():
    """Header, no agents, no skills, no events"""
    return build_evtc()


@pytest.fixture
def deimos_agents():
    """Two players, a gadget sharing the boss species id, and the boss"""
    return [
        player_agent(PLAYER_ONE, "Some Character", "Some.1234", "1"),
        player_agent(PLAYER_TWO, "Other Character", "Other.5678", "2"),
        gadget_agent(0x50, DEIMOS_ID),
        npc_agent(BOSS_ADDRESS, DEIMOS_ID, "Deimos"),
    ]


@pytest.fixture
def deimos_events():
    """A won Deimos attempt in challenge mote"""
    return [
        log_start(1000, 1546300800),
        max_health(BOSS_ADDRESS, 42000000, 1001),
        guild_event(PLAYER_ONE, GUILD_BYTES, 1002),
        reward(5000),
        log_end(6000, 1546300900),
    ]


@pytest.fixture
def deimos_evtc(deimos_agents, deimos_events):
    """Complete revision 1 Deimos log"""
    return build_evtc(
        encounter_id=DEIMOS_ID,
        agents=deimos_agents,
        skills=[(1, "Skill")],
        events=deimos_events,
    )
