"""Profile API Client — httpx-backed ProfileService.

Invariants:
    - Single attempt per call, bounded by the client timeout; no retry, no circuit breaker
    - Any failure (transport error, timeout, non-2xx, malformed body) returns None
    - Failures are logged with the service name; callers never see an exception
    - Parsed results are frozen core types (core/profile_types.py)

Design Decisions:
    - Parsing lives in module-level functions so the wire format is testable
      without a transport
    - statsMaxed = -1 (or missing) on a character means "tier unknown" -> tier None
"""

import logging

import httpx

from gatekeeper.core.domain_types import LONG_STAT_TO_SHORT
from gatekeeper.core.profile_types import (
    AchievementTotal, Character, CharacterExaltation, ExaltationRecord,
    GraveyardSummary, NameHistory, PlayerProfileSnapshot,
)

logger = logging.getLogger(__name__)


# ─── Wire parsing ────────────────────────────────────────────────

def parse_player_info(data: dict) -> PlayerProfileSnapshot:
    characters = []
    for raw in data.get("characters", []):
        tier = raw.get("statsMaxed", -1)
        characters.append(Character(
            tier=None if tier is None or tier < 0 else int(tier),
            is_deceased=bool(raw.get("isDeceased", False)),
            class_name=raw.get("class", ""),
        ))
    return PlayerProfileSnapshot(
        name=data["name"],
        rank=int(data.get("rank", 0)),
        alive_fame=int(data.get("fame", 0)),
        guild=data.get("guild") or "",
        guild_rank=data.get("guildRank") or "",
        last_seen=data.get("lastSeen") or "",
        characters=tuple(characters),
        description=tuple(data.get("description", [])),
        created=data.get("created"),
        first_seen=data.get("firstSeen"),
    )


def parse_name_history(data: dict) -> NameHistory:
    return NameHistory(names=tuple(entry["name"] for entry in data.get("nameHistory", [])))


def parse_graveyard_summary(data: dict) -> GraveyardSummary:
    return GraveyardSummary(
        achievements=tuple(
            AchievementTotal(achievement=p["achievement"], total=int(p.get("total", 0)))
            for p in data.get("properties", [])
        ),
        stats_characters=tuple(
            tuple(int(n) for n in entry.get("stats", []))
            for entry in data.get("statsCharacters", [])
        ),
    )


def parse_exaltation(data: dict) -> ExaltationRecord:
    characters = []
    for entry in data.get("exaltations", []):
        stats = {}
        for long_stat, amount in entry.get("exaltationStats", {}).items():
            short = LONG_STAT_TO_SHORT.get(long_stat.lower())
            if short is not None:
                stats[short] = int(amount)
        characters.append(CharacterExaltation(class_name=entry.get("class", ""), stats=stats))
    return ExaltationRecord(characters=tuple(characters))


# ─── Client ──────────────────────────────────────────────────────

class HttpProfileService:
    """ProfileService over the profile API. Construct once per process."""

    SERVICE = "profile_api"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds, transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _get_json(self, path: str, name: str | None = None) -> dict | None:
        params = {"name": name} if name is not None else None
        try:
            response = await self.client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Profile lookup %s failed: %s", path, e,
                extra={"service": self.SERVICE, "error_code": "EXTERNAL_UNAVAILABLE"},
            )
            return None

    async def _get_parsed(self, path: str, name: str, parse):
        data = await self._get_json(path, name)
        if data is None:
            return None
        try:
            return parse(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Malformed profile payload from %s: %s", path, e,
                extra={"service": self.SERVICE, "error_code": "EXTERNAL_UNAVAILABLE"},
            )
            return None

    async def is_online(self) -> bool:
        data = await self._get_json("/api/online")
        return bool(data and data.get("online", False))

    async def get_player_info(self, name: str) -> PlayerProfileSnapshot | None:
        return await self._get_parsed("/api/player/basics", name, parse_player_info)

    async def get_name_history(self, name: str) -> NameHistory | None:
        return await self._get_parsed("/api/player/namehistory", name, parse_name_history)

    async def get_graveyard_summary(self, name: str) -> GraveyardSummary | None:
        return await self._get_parsed(
            "/api/player/graveyardsummary", name, parse_graveyard_summary,
        )

    async def get_exaltation(self, name: str) -> ExaltationRecord | None:
        return await self._get_parsed("/api/player/exaltations", name, parse_exaltation)
