"""Boundary Protocols — contracts between the pure core and the IO shell.

Invariants:
    - Core never imports from the shell; dependency arrows point inward only
    - Every profile lookup returns a value or None; None is the single "unavailable" outcome
    - Gateway calls return bool / ids and never raise for platform-side refusals

Design Decisions:
    - Protocol over ABC: structural subtyping, fakes in tests need no inheritance
    - Async methods because every implementation does IO; the pure core
      never awaits them itself, the services layer orchestrates the calls
"""

from typing import Protocol

from gatekeeper.core.profile_types import (
    ExaltationRecord, GraveyardSummary, NameHistory, PlayerProfileSnapshot,
)


class ProfileService(Protocol):
    """External player-profile source (time-bounded, single attempt)."""
    async def is_online(self) -> bool: ...
    async def get_player_info(self, name: str) -> PlayerProfileSnapshot | None: ...
    async def get_name_history(self, name: str) -> NameHistory | None: ...
    async def get_graveyard_summary(self, name: str) -> GraveyardSummary | None: ...
    async def get_exaltation(self, name: str) -> ExaltationRecord | None: ...


class BotGateway(Protocol):
    """Chat-platform side effects, executed by the bot front-end."""
    async def send_channel_message(self, channel_id: str, content: str) -> str | None: ...
    async def delete_channel_message(self, channel_id: str, message_id: str) -> bool: ...
    async def send_direct_message(self, member_id: str, content: str) -> bool: ...
    async def add_role(self, member_id: str, role_id: str, reason: str) -> bool: ...
    async def has_role(self, member_id: str, role_id: str) -> bool: ...
    async def role_exists(self, role_id: str) -> bool: ...
    async def set_nickname(self, member_id: str, nickname: str, reason: str) -> bool: ...
    async def is_member_present(self, member_id: str) -> bool: ...
    async def get_display_name(self, member_id: str) -> str | None: ...
    async def open_discussion(self, member_id: str, moderator_id: str) -> bool: ...
