"""
Tests for summary rendering
"""

import json

import pytest

import config
from formatting import TOOL_NAME, format_value, summary_to_dict, summary_to_json
from parser import EVTCParser


@pytest.fixture
def summary(deimos_evtc):
    return EVTCParser().parse_bytes(deimos_evtc)


def test_document_shape(summary):
    doc = summary_to_dict(summary)
    assert doc["tool"] == {"name": TOOL_NAME, "version": config.VERSION}
    assert doc["header"] == {"arcdps_version": "EVTC20190101", "revision": 1}
    assert doc["boss"] == {
        "name": "Deimos",
        "location": "4",
        "id": 0x4302,
        "is_cm": "YES",
        "maxhealth": 42000000,
        "success": True,
        "duration": 4000,
    }
    assert doc["local_time"] == {
        "start": 1000, "end": 5000, "last_event": 6000, "reward": 5000, "log_end": 6000,
    }
    assert doc["server_time"] == {"start": 1546300800, "end": 1546300900}


def test_guid_only_when_known(summary):
    players = summary_to_dict(summary)["players"]
    assert players[0] == {
        "account": "Some.1234",
        "character": "Some Character",
        "subgroup": "1",
        "guid": "00000001-0002-0003-1234-56789ABCDEF0",
    }
    assert "guid" not in players[1]


def test_optional_times_omitted(minimal_evtc):
    doc = summary_to_dict(EVTCParser().parse_bytes(minimal_evtc))
    assert doc["local_time"] == {"start": None, "end": None, "last_event": None}
    assert doc["boss"]["maxhealth"] == 0
    assert doc["boss"]["duration"] is None


def test_json_is_indented(summary):
    text = summary_to_json(summary)
    assert text.startswith('{\n    "tool"')
    assert json.loads(text) == summary_to_dict(summary)


@pytest.mark.parametrize("value,expected", [
    (None, "0"),
    (True, "SUCCESS"),
    (False, "FAILURE"),
    (1546300800, "1546300800"),
    ("4", "4"),
])
def test_format_value(value, expected):
    assert format_value(value) == expected
