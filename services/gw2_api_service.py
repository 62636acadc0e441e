"""
GW2 API Integration Service
Looks up guild details for the guild ids found in combat logs
"""

import re
from dataclasses import dataclass, asdict, field
from typing import Optional, Dict, List

import httpx

import config
from logger import get_logger

logger = get_logger('gw2_api')

# Guild ids as printed for GUILD events: 8-4-4-4-12 hex digits
GUILD_ID_PATTERN = re.compile(
    r'^[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}$'
)


class GW2APIError(Exception):
    """The GW2 API could not be reached or answered with an unexpected status"""


@dataclass
class GW2Guild:
    """GW2 Guild information (public part of /v2/guild/:id)"""
    id: str
    name: str
    tag: str = ""
    level: int = 0
    emblem: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return asdict(self)


class GW2APIService:
    """Service for interacting with GW2 API"""

    def __init__(self, base_url: str = None, timeout: float = None,
                 transport: httpx.AsyncBaseTransport = None):
        self.base_url = (base_url or config.GW2_API_BASE).rstrip('/')
        self.client = httpx.AsyncClient(
            timeout=timeout or config.GW2_API_TIMEOUT,
            transport=transport,
        )

    async def get_guild(self, guild_id: str) -> Optional[GW2Guild]:
        """
        Get guild information

        Args:
            guild_id: Guild id as printed in summaries

        Returns:
            The guild, or None if the API does not know it

        Raises:
            ValueError: If the id is not a guild id
            GW2APIError: On transport errors or unexpected statuses
        """
        if not GUILD_ID_PATTERN.match(guild_id):
            raise ValueError(f"Invalid guild id: {guild_id}")

        try:
            response = await self.client.get(f"{self.base_url}/guild/{guild_id}")
        except httpx.HTTPError as e:
            logger.error(f"Get guild info error for {guild_id}: {e}")
            raise GW2APIError(str(e)) from e

        if response.status_code == 200:
            data = response.json()
            return GW2Guild(
                id=data.get("id", guild_id),
                name=data.get("name", ""),
                tag=data.get("tag", ""),
                level=data.get("level", 0),
                emblem=data.get("emblem") or {},
            )
        # The API answers 400 "invalid id" for well formed but unknown guilds
        if response.status_code in (400, 404):
            logger.info(f"Guild not found: {guild_id}")
            return None

        logger.error(f"GW2 API error for guild {guild_id}: {response.status_code}")
        raise GW2APIError(f"GW2 API returned {response.status_code}")

    async def get_guilds(self, guild_ids: List[str]) -> Dict[str, Optional[GW2Guild]]:
        """Look up several guilds, one request per distinct id"""
        results = {}
        for guild_id in dict.fromkeys(guild_ids):
            results[guild_id] = await self.get_guild(guild_id)
        return results

    async def aclose(self):
        await self.client.aclose()


_gw2_api: Optional[GW2APIService] = None


def get_gw2_api() -> GW2APIService:
    """Process-wide service instance, created on first use"""
    global _gw2_api
    if _gw2_api is None:
        _gw2_api = GW2APIService()
    return _gw2_api


async def close_gw2_api():
    global _gw2_api
    if _gw2_api is not None:
        await _gw2_api.aclose()
        _gw2_api = None
