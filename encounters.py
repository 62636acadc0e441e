"""
EVTC Summary - Encounter table and challenge mote resolution

Maps the encounter id from the EVTC header to a display name, a location and
the way its challenge mote status can be told from the log.

By convention, raid wings have their location set to the wing number in
release order. Fractals and other encounters use the in-game area name.
"""

import json
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

import config
from logger import get_logger
from models import CMStatus

logger = get_logger('encounters')


class CMPolicy(str, Enum):
    """How challenge mote status is detected for an encounter"""
    NEVER = "never"
    HEALTH_BASED = "health_based"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class EncounterInfo:
    """Display metadata for an encounter id"""
    name: str
    location: str
    cm_policy: CMPolicy = CMPolicy.NEVER
    health_threshold: int = 0


def _info(name: str, location: str, cm_policy: CMPolicy = CMPolicy.NEVER,
          health_threshold: int = 0) -> EncounterInfo:
    return EncounterInfo(name, location, cm_policy, health_threshold)


_NEVER = CMPolicy.NEVER
_HEALTH = CMPolicy.HEALTH_BASED
_UNKNOWN = CMPolicy.INDETERMINATE


# =============================================================================
# BUILT-IN ENCOUNTERS
# =============================================================================

DEFAULT_ENCOUNTERS: Dict[int, EncounterInfo] = {
    # Raid Wing 1
    0x3C4E: _info("Vale Guardian", "1"),
    0x3C45: _info("Gorseval", "1"),
    0x3C0F: _info("Sabetha", "1"),
    # Raid Wing 2
    0x3EFB: _info("Slothasor", "2"),
    0x3ED8: _info("Bandit Trio", "2"),
    0x3F09: _info("Bandit Trio", "2"),
    0x3EFD: _info("Bandit Trio", "2"),
    0x3EF3: _info("Matthias", "2"),
    # Raid Wing 3
    0x3F6B: _info("Keep Construct", "3"),
    0x3F77: _info("Twisted Castle", "3"),
    0x3F76: _info("Xera", "3"),
    0x3F9E: _info("Xera", "3"),
    # Raid Wing 4
    0x432A: _info("Cairn", "4", _UNKNOWN),
    0x4314: _info("Mursaat Overseer", "4", _HEALTH, 25000000),
    0x4324: _info("Samarog", "4", _HEALTH, 35000000),
    0x4302: _info("Deimos", "4", _HEALTH, 40000000),
    # Raid Wing 5
    0x4D37: _info("Soulless Horror", "5", _UNKNOWN),
    0x4D74: _info("Rainbow Road", "5"),
    0x4CEB: _info("Broken King", "5"),
    0x4C50: _info("Soul Eater", "5"),
    0x4CC3: _info("Eye of Judgement", "5"),
    0x4D84: _info("Eye of Fate", "5"),
    0x4BFA: _info("Dhuum", "5", _HEALTH, 35000000),
    # Raid Wing 6
    0xABC6: _info("Conjured Amalgamate", "6", _UNKNOWN),
    0x5271: _info("Largos Twins", "6", _HEALTH, 18000000),
    0x5261: _info("Largos Twins", "6", _HEALTH, 18000000),
    0x51C6: _info("Qadim", "6", _HEALTH, 21000000),
    # Raid Wing 7
    0x55F6: _info("Cardinal Adina", "7", _UNKNOWN),
    0x55CC: _info("Cardinal Sabir", "7", _UNKNOWN),
    0x55F0: _info("Qadim the Peerless", "7", _UNKNOWN),
    # Winter Strike Mission
    0x5355: _info("Freezie", "Wintersday"),
    # Fractal 99 CM
    0x427D: _info("MAMA (CM)", "99cm"),
    0x4284: _info("Siax (CM)", "99cm"),
    0x4234: _info("Ensolyss (CM)", "99cm"),
    # Fractal 100 CM. Skorvald shares its id with the Shattered Observatory
    # normal mode, the CM entry takes it.
    0x44E0: _info("Skorvald the Shattered (CM)", "100cm"),
    0x461D: _info("Artsariiv (CM)", "100cm"),
    0x455F: _info("Arkk (CM)", "100cm"),
    # Aquatic Ruins Fractal
    0x2C8A: _info("Jellyfish Beast", "Aquatic Ruins"),
    # Captain Mai Trin Boss
    0x4263: _info("Champion Inquest Technician", "Mai Trin Boss"),
    0x2FEA: _info("Mai Trin", "Mai Trin Boss"),
    # Chaos Isles Fractal
    0x40E9: _info("Brazen Gladiator", "Chaos Isles"),
    # Cliffside Fractal
    0x2C20: _info("Archdiviner", "Cliffside"),
    # Molten Boss
    0x325E: _info("Molten Effigy", "Molten Boss"),
    # Nightmare
    0x4268: _info("MAMA", "Nightmare"),
    0x4215: _info("Siax the Unclean", "Nightmare"),
    0x429B: _info("Ensolyss", "Nightmare"),
    # Snowblind
    0x2C45: _info("Svanir Shaman", "Snowblind"),
    # Solid Ocean
    0x2BF6: _info("The Jade Maw", "Solid Ocean"),
    # Swampland
    0x2C00: _info("Mossman", "Swampland"),
    0x2C01: _info("Bloomhunger", "Swampland"),
    # Thaumanova Reactor
    0x3268: _info("Subject 6", "Thaumanova"),
    0x326A: _info("Thaumanova Anomaly", "Thaumanova"),
    # Underground Facility
    0x2BE9: _info("Rabsovich", "Underground Facility"),
    0x2BE8: _info("Rampaging Ice Elemental", "Underground Facility"),
    0x2BE7: _info("Dredge Powersuit", "Underground Facility"),
    # Urban Battleground
    0x2C9D: _info("Siegemaster Dulfy", "Urban Battleground"),
    0x2C90: _info("Captain Ashym", "Urban Battleground"),
    # Volcanic
    0x2CDC: _info("Grawl Shaman", "Volcanic"),
    0x2CDD: _info("Imbued Shaman", "Volcanic"),
    # Uncategorized
    0x2C41: _info("Uncategorized Champions", "Uncategorized"),
    0x2C44: _info("Uncategorized Champions", "Uncategorized"),
    0x2C43: _info("Uncategorized Champions", "Uncategorized"),
    0x2C3A: _info("Old Tom", "Uncategorized"),
    0x2C3D: _info("Raving Asura", "Uncategorized"),
    0x2C3C: _info("Raving Asura", "Uncategorized"),
    0x2C3E: _info("Raving Asura", "Uncategorized"),
    0x2C3F: _info("Raving Asura", "Uncategorized"),
    # Training Golems
    0x3F46: _info("Vital Kitty Golem (10m HP)", "Training Golem"),
    0x3F31: _info("Average Kitty Golem (4m HP)", "Training Golem"),
    0x3F47: _info("Standard Kitty Golem (1m HP)", "Training Golem"),
    0x3F29: _info("Massive Kitty Golem (10m HP)", "Training Golem"),
    0x3F4A: _info("Massive Kitty Golem (4m HP)", "Training Golem"),
    0x3F32: _info("Massive Kitty Golem (1m HP)", "Training Golem"),
    0x3F2E: _info("Tough Kitty Golem", "Training Golem"),
    0x3F30: _info("Resistant Kitty Golem", "Training Golem"),
    0x4CDC: _info("Large Kitty Golem (4m HP)", "Training Golem"),
    0x4CBD: _info("Medium Kitty Golem (4m HP)", "Training Golem"),
}


def _parse_encounter_id(key: Union[str, int]) -> int:
    if isinstance(key, int):
        return key
    return int(key, 0)


def load_encounter_table(path: Optional[Union[str, Path]] = None) -> Mapping[int, EncounterInfo]:
    """
    Build the read-only encounter table.

    Starts from the built-in encounters; a JSON file (argument, or the
    EVTC_ENCOUNTERS_FILE setting) can add or replace entries:

        {"0x4D37": {"name": "Soulless Horror", "location": "5",
                    "cm_policy": "health_based", "health_threshold": 35000000}}
    """
    table = dict(DEFAULT_ENCOUNTERS)

    path = path or config.ENCOUNTERS_FILE
    if path:
        with open(path, encoding='utf-8') as f:
            overrides = json.load(f)
        for key, entry in overrides.items():
            table[_parse_encounter_id(key)] = EncounterInfo(
                name=entry['name'],
                location=entry.get('location', ''),
                cm_policy=CMPolicy(entry.get('cm_policy', CMPolicy.NEVER.value)),
                health_threshold=int(entry.get('health_threshold', 0)),
            )
        logger.info(f"Loaded {len(overrides)} encounter entries from {path}")

    return MappingProxyType(table)


@lru_cache(maxsize=None)
def get_encounter_table() -> Mapping[int, EncounterInfo]:
    """Process-wide encounter table, loaded on first use"""
    return load_encounter_table()


class EncounterResolver:
    """Resolves encounter ids and challenge mote status against a table"""

    def __init__(self, table: Optional[Mapping[int, EncounterInfo]] = None):
        self.table = table if table is not None else MappingProxyType(dict(DEFAULT_ENCOUNTERS))

    def resolve(self, encounter_id: int) -> EncounterInfo:
        info = self.table.get(encounter_id)
        if info is None:
            logger.warning(f"Unknown encounter id {encounter_id} ({encounter_id:#06x})")
            return EncounterInfo(
                name=f"Unknown encounter {encounter_id}",
                location="Unknown",
                cm_policy=CMPolicy.INDETERMINATE,
            )
        return info

    @staticmethod
    def evaluate_cm(info: EncounterInfo, boss_max_health: Optional[int]) -> CMStatus:
        """Challenge mote verdict from the policy and the boss max health, if captured"""
        if info.cm_policy == CMPolicy.NEVER:
            return CMStatus.NO
        if info.cm_policy == CMPolicy.HEALTH_BASED:
            if boss_max_health is None:
                return CMStatus.UNKNOWN
            if boss_max_health >= info.health_threshold:
                return CMStatus.YES
            return CMStatus.NO
        return CMStatus.UNKNOWN
