"""Scope Schemas — scope configuration and requirement policy payloads.

Invariants:
    - PolicyBody mirrors the stored policy JSON tree; pydantic enforces types and bounds
    - stats_needed holds at most NUMBER_OF_STATS + 1 counts, all non-negative
    - guild.rank.min must be a known guild rank
    - logging_channels keys must be ChannelRole values

Design Decisions:
    - Nested BaseModels over a free-form dict: a malformed policy is rejected at
      the boundary (400) instead of being silently defaulted by policy_from_dict
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from gatekeeper.core.domain_types import (
    GUILD_RANKS, NUMBER_OF_STATS, SHORT_STAT_TO_LONG, ChannelRole,
)


# ─── Requirement policy tree ─────────────────────────────────────

class LastSeenBody(BaseModel):
    must_be_hidden: bool = False


class ThresholdBody(BaseModel):
    enabled: bool = False
    min: int = Field(0, ge=0)


class GuildNameBody(BaseModel):
    enabled: bool = False
    value: str = Field("", max_length=64)


class GuildRankBody(BaseModel):
    enabled: bool = False
    min: str = "Initiate"
    exact: bool = False

    @field_validator("min")
    @classmethod
    def check_rank(cls, v: str) -> str:
        if v not in GUILD_RANKS:
            raise ValueError(f"unknown guild rank: {v}")
        return v


class GuildBody(BaseModel):
    enabled: bool = False
    name: GuildNameBody = GuildNameBody()
    rank: GuildRankBody = GuildRankBody()


class CharactersBody(BaseModel):
    enabled: bool = False
    stats_needed: list[int] = Field(default_factory=list, max_length=NUMBER_OF_STATS + 1)
    check_past_deaths: bool = False

    @field_validator("stats_needed")
    @classmethod
    def check_counts(cls, v: list[int]) -> list[int]:
        if any(count < 0 for count in v):
            raise ValueError("character counts cannot be negative")
        return v


class ExaltationsBody(BaseModel):
    enabled: bool = False
    minimum: dict[str, int] = {}
    on_one_character: bool = False

    @field_validator("minimum")
    @classmethod
    def check_stats(cls, v: dict[str, int]) -> dict[str, int]:
        unknown = set(v) - set(SHORT_STAT_TO_LONG)
        if unknown:
            raise ValueError(f"unknown stats: {sorted(unknown)}")
        return v


class GraveyardBody(BaseModel):
    enabled: bool = False
    use_logged_counters: bool = False
    logged_targets: dict[str, int] = {}
    history_targets: dict[str, int] = {}


class PolicyBody(BaseModel):
    check_requirements: bool = False
    last_seen: LastSeenBody = LastSeenBody()
    rank: ThresholdBody = ThresholdBody()
    guild: GuildBody = GuildBody()
    alive_fame: ThresholdBody = ThresholdBody()
    characters: CharactersBody = CharactersBody()
    exaltations: ExaltationsBody = ExaltationsBody()
    graveyard: GraveyardBody = GraveyardBody()


# ─── Scope ───────────────────────────────────────────────────────

class ScopeUpsert(BaseModel):
    community_id: str = Field(min_length=1, max_length=32)
    name: str = Field(min_length=1, max_length=100)
    is_main: bool = False
    verified_role_id: str | None = Field(None, max_length=32)
    manual_review_channel_id: str | None = Field(None, max_length=32)
    logging_channels: dict[str, str] = {}
    success_message: str | None = Field(None, max_length=2000)

    @field_validator("logging_channels")
    @classmethod
    def check_roles(cls, v: dict[str, str]) -> dict[str, str]:
        known = {role.value for role in ChannelRole}
        unknown = set(v) - known
        if unknown:
            raise ValueError(f"unknown channel roles: {sorted(unknown)}")
        return v


class ScopeResponse(BaseModel):
    id: str
    community_id: str
    name: str
    is_main: bool
    verified_role_id: str | None
    manual_review_channel_id: str | None
    logging_channels: dict[str, str]
    success_message: str | None
    requirement_policy: dict
    created_at: datetime

    model_config = {"from_attributes": True}


class RequirementsResponse(BaseModel):
    scope_id: str
    requirements: list[str]
