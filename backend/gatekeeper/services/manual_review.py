"""Manual Review Coordinator — durable escalation queue and moderator dispositions.

Invariants:
    - At most one entry per (user, scope): pre-check + DB unique constraint
    - escalate() returns only after the entry is committed
    - A review item whose entry loses the unique-constraint race is deleted again
    - Accept / Deny delete the queue message and the entry; Discuss keeps the entry
    - A disposition against a scope without a valid membership role raises ConfigError
      and keeps the entry for a retry once configuration is fixed
    - Subject gone -> purge all their entries (every scope); scope gone -> purge its entries
    - Queue-message deletion is best-effort and never blocks a purge

Design Decisions:
    - Purge-on-disposition mirrors the cleanup triggers so stale entries cannot
      block moderators even if a departure event was missed
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.domain_types import ChannelRole, Disposition
from gatekeeper.core.errors import (
    ConfigError, ErrorContext, ManualReviewPendingError, ResourceNotFoundError,
)
from gatekeeper.core.format_messages import (
    fmt_manual_accepted, fmt_manual_denied, fmt_member_accepted, fmt_member_denied,
    fmt_review_item, scope_label,
)
from gatekeeper.core.profile_types import PlayerProfileSnapshot
from gatekeeper.core.repository_protocols import BotGateway
from gatekeeper.core.requirement_rules import Issue
from gatekeeper.core.verification_state import ModeratorDisposed
from gatekeeper.models import ManualVerificationEntry, Scope
from gatekeeper.services.identity_store import IdentityStore
from gatekeeper.services.notifier import ScopeNotifier, grant_membership

logger = logging.getLogger(__name__)


class ManualReviewCoordinator:
    def __init__(self, db: AsyncSession, gateway: BotGateway):
        self.store = IdentityStore(db)
        self.gateway = gateway
        self.notifier = ScopeNotifier(gateway)

    # ─── Escalation ──────────────────────────────────────────────

    async def escalate(
        self,
        member_id: str,
        scope: Scope,
        candidate_name: str,
        snapshot: PlayerProfileSnapshot,
        issues: list[Issue],
    ) -> ManualVerificationEntry:
        """Post a review item and durably record the entry."""
        ctx = ErrorContext(member_id=member_id, scope_id=scope.id)
        if not scope.manual_review_channel_id:
            raise ConfigError(
                "scope has no manual review channel", "manual_review_channel_id", ctx,
            )
        if await self.store.get_manual_entry(member_id, scope.id) is not None:
            raise ManualReviewPendingError(ctx)

        message_id = await self.gateway.send_channel_message(
            scope.manual_review_channel_id,
            fmt_review_item(scope.name, member_id, snapshot, issues),
        )
        if message_id is None:
            logger.warning(
                "Review item could not be posted; entry recorded without a queue message",
                extra={"member_id": member_id, "scope_id": scope.id},
            )

        scope_id, channel_id = scope.id, scope.manual_review_channel_id
        try:
            entry = await self.store.add_manual_entry(
                member_id, scope_id, candidate_name, channel_id, message_id,
            )
        except ManualReviewPendingError:
            # Lost the unique-constraint race.
            if message_id:
                await self.gateway.delete_channel_message(channel_id, message_id)
            raise
        logger.info(
            "Manual review entry recorded",
            extra={"member_id": member_id, "scope_id": scope_id, "entry_id": str(entry.id)},
        )
        return entry

    # ─── Dispositions ────────────────────────────────────────────

    async def dispose(self, event: ModeratorDisposed) -> str:
        """Apply a moderator decision. Returns the resulting entry status."""
        entry_id, moderator_id, disposition = event.entry_id, event.moderator_id, event.disposition
        entry = await self.store.get_manual_entry_by_id(entry_id)
        if entry is None:
            raise ResourceNotFoundError("ManualVerificationEntry", str(entry_id))

        if not await self.gateway.is_member_present(entry.user_id):
            await self.purge_member(entry.user_id)
            return "purged"

        scope = await self.store.get_scope(entry.scope_id)
        if scope is None:
            await self.purge_scope(entry.scope_id)
            return "purged"

        ctx = ErrorContext(member_id=entry.user_id, scope_id=scope.id)
        if not scope.verified_role_id or not await self.gateway.role_exists(scope.verified_role_id):
            raise ConfigError("scope has no valid membership role", "verified_role_id", ctx)

        log_extra = {
            "member_id": entry.user_id, "scope_id": scope.id,
            "moderator_id": moderator_id, "entry_id": str(entry.id),
        }
        if disposition == Disposition.DISCUSS:
            opened = await self.gateway.open_discussion(entry.user_id, moderator_id)
            logger.info("Manual review moved to discussion", extra=log_extra)
            return "discussion_opened" if opened else "discussion_failed"

        label = scope_label(scope.name, scope.is_main)
        if disposition == Disposition.ACCEPT:
            await grant_membership(self.gateway, entry.user_id, scope, entry.candidate_name)
            if scope.is_main:
                await self.store.remember_name(entry.user_id, entry.candidate_name)
            await self.notifier.direct(
                entry.user_id, fmt_member_accepted(scope.name, scope.success_message),
            )
            await self.notifier.notify(scope, ChannelRole.SUCCESS, fmt_manual_accepted(
                label, entry.user_id, entry.candidate_name, moderator_id, scope.is_main,
            ))
            status = "accepted"
        else:
            await self.notifier.direct(entry.user_id, fmt_member_denied(scope.name))
            await self.notifier.notify(scope, ChannelRole.FAILURE, fmt_manual_denied(
                label, entry.user_id, entry.candidate_name, moderator_id, scope.is_main,
            ))
            status = "denied"

        await self._delete_queue_message(entry)
        await self.store.db.delete(entry)
        await self.store.commit()
        logger.info(f"Manual review {status}", extra=log_extra)
        return status

    # ─── Cleanup ─────────────────────────────────────────────────

    async def purge_member(self, user_id: str) -> int:
        entries = await self.store.remove_manual_entries(user_id=user_id)
        await self.store.commit()
        for entry in entries:
            await self._delete_queue_message(entry)
        logger.info(
            "Purged %d manual entries for departed member", len(entries),
            extra={"member_id": user_id},
        )
        return len(entries)

    async def purge_scope(self, scope_id: str) -> int:
        entries = await self.store.remove_manual_entries(scope_id=scope_id)
        await self.store.commit()
        for entry in entries:
            await self._delete_queue_message(entry)
        logger.info(
            "Purged %d manual entries for scope", len(entries), extra={"scope_id": scope_id},
        )
        return len(entries)

    async def list_pending(self, scope_id: str) -> list[ManualVerificationEntry]:
        return await self.store.list_manual_entries(scope_id=scope_id)

    async def _delete_queue_message(self, entry: ManualVerificationEntry) -> None:
        if entry.queue_message_id:
            await self.gateway.delete_channel_message(
                entry.queue_channel_id, entry.queue_message_id,
            )
