"""
EVTC Summary - Output formatting
Structured document and plain text renderings of a ParsedSummary
"""

import json
from typing import Any, Dict, Optional

import config
from models import ParsedSummary, PlayerSummary

TOOL_NAME = "evtc-summary"


def player_to_dict(player: PlayerSummary) -> Dict[str, Any]:
    data = {
        "account": player.account,
        "character": player.character,
        "subgroup": player.subgroup,
    }
    # Only players with a GUILD event carry a guild id
    if player.guild:
        data["guid"] = player.guild
    return data


def summary_to_dict(summary: ParsedSummary) -> Dict[str, Any]:
    """Convert a summary into the JSON document served by the CLI and the API"""
    local_time = {
        "start": summary.local_start,
        "end": summary.local_end,
        "last_event": summary.last_event_time,
    }
    if summary.reward_time is not None:
        local_time["reward"] = summary.reward_time
    if summary.log_end_time is not None:
        local_time["log_end"] = summary.log_end_time

    return {
        "tool": {"name": TOOL_NAME, "version": config.VERSION},
        "header": {
            "arcdps_version": summary.header.arcdps_version,
            "revision": summary.header.revision,
        },
        "boss": {
            "name": summary.encounter_name,
            "location": summary.location,
            "id": summary.header.encounter_id,
            "is_cm": summary.is_cm.value,
            "maxhealth": summary.boss_max_health or 0,
            "success": summary.success,
            "duration": summary.duration,
        },
        "local_time": local_time,
        "server_time": {
            "start": summary.server_start,
            "end": summary.server_end,
        },
        "players": [player_to_dict(p) for p in summary.players],
    }


def summary_to_json(summary: ParsedSummary, indent: int = 4) -> str:
    return json.dumps(summary_to_dict(summary), indent=indent, ensure_ascii=False)


def format_value(value: Optional[Any]) -> str:
    """Single fact as printed by the CLI; missing values print as 0"""
    if value is None:
        return "0"
    if isinstance(value, bool):
        return "SUCCESS" if value else "FAILURE"
    return str(value)
