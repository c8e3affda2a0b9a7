"""Scope Notifier and Membership Grant — fire-and-forget side effects through the bot gateway.

Invariants:
    - notify() resolves the channel from scope.logging_channels[role]; unconfigured -> dropped
    - Neither notify() nor grant_membership() raises; failures are logged only
    - grant_membership sets the nickname only for the main scope and only with a name
"""

import logging

from gatekeeper.core.domain_types import ChannelRole
from gatekeeper.core.repository_protocols import BotGateway
from gatekeeper.models import Scope

logger = logging.getLogger(__name__)


class ScopeNotifier:
    def __init__(self, gateway: BotGateway):
        self.gateway = gateway

    async def notify(self, scope: Scope, role: ChannelRole, content: str) -> None:
        channel_id = (scope.logging_channels or {}).get(role.value)
        if not channel_id:
            return
        sent = await self.gateway.send_channel_message(channel_id, content)
        if sent is None:
            logger.warning(
                "Log message dropped", extra={"scope_id": scope.id, "state": role.value},
            )

    async def direct(self, member_id: str, content: str) -> None:
        if not await self.gateway.send_direct_message(member_id, content):
            logger.info("Direct message not delivered", extra={"member_id": member_id})


async def grant_membership(
    gateway: BotGateway, member_id: str, scope: Scope, name: str | None = None,
) -> bool:
    """Add the scope's membership role; for the main scope also set the nickname."""
    if not scope.verified_role_id:
        logger.error(
            "Grant skipped: scope has no membership role",
            extra={"member_id": member_id, "scope_id": scope.id, "error_code": "CONFIG_ERROR"},
        )
        return False
    granted = await gateway.add_role(member_id, scope.verified_role_id, "Verified.")
    if not granted:
        logger.error(
            "Membership grant failed",
            extra={"member_id": member_id, "scope_id": scope.id},
        )
    if scope.is_main and name:
        await gateway.set_nickname(member_id, name, "Verified in the main scope.")
    return granted
