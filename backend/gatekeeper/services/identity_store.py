"""Identity Store — durable scopes, policies, manual entries, known names, blacklist, counters.

Invariants:
    - One instance per AsyncSession (per request or per reaper tick)
    - Write helpers flush; commit() is called by the orchestrating service
    - add_manual_entry commits itself: the entry is durable before the handoff completes,
      and a unique-constraint race surfaces as ManualReviewPendingError
    - increment_counter is append-or-increment on the structured CounterKey
    - Name comparisons use the lowercase column; stored names keep their casing
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.counter_keys import CounterKey
from gatekeeper.core.domain_types import CounterCategory, CounterOutcome
from gatekeeper.core.errors import ErrorContext, ManualReviewPendingError
from gatekeeper.models import (
    BlacklistEntry, KnownName, LoggedCounter, ManualVerificationEntry, Scope,
)

logger = logging.getLogger(__name__)


class IdentityStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def commit(self) -> None:
        await self.db.commit()

    # ─── Scopes & policies ───────────────────────────────────────

    async def get_scope(self, scope_id: str) -> Scope | None:
        return await self.db.get(Scope, scope_id)

    async def upsert_scope(self, scope_id: str, **fields) -> Scope:
        scope = await self.get_scope(scope_id)
        if scope is None:
            scope = Scope(id=scope_id, **fields)
            self.db.add(scope)
        else:
            for key, value in fields.items():
                setattr(scope, key, value)
        await self.db.flush()
        return scope

    async def set_policy(self, scope: Scope, policy_data: dict) -> None:
        scope.requirement_policy = policy_data
        await self.db.flush()

    async def delete_scope(self, scope: Scope) -> None:
        await self.db.delete(scope)
        await self.db.flush()

    # ─── Manual verification entries ─────────────────────────────

    async def get_manual_entry(self, user_id: str, scope_id: str) -> ManualVerificationEntry | None:
        result = await self.db.execute(
            select(ManualVerificationEntry).where(
                ManualVerificationEntry.user_id == user_id,
                ManualVerificationEntry.scope_id == scope_id,
            ),
        )
        return result.scalar_one_or_none()

    async def get_manual_entry_by_id(self, entry_id) -> ManualVerificationEntry | None:
        return await self.db.get(ManualVerificationEntry, entry_id)

    async def list_manual_entries(
        self, scope_id: str | None = None, user_id: str | None = None,
    ) -> list[ManualVerificationEntry]:
        query = select(ManualVerificationEntry).order_by(ManualVerificationEntry.created_at)
        if scope_id is not None:
            query = query.where(ManualVerificationEntry.scope_id == scope_id)
        if user_id is not None:
            query = query.where(ManualVerificationEntry.user_id == user_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def add_manual_entry(
        self, user_id: str, scope_id: str, candidate_name: str,
        queue_channel_id: str, queue_message_id: str | None,
    ) -> ManualVerificationEntry:
        entry = ManualVerificationEntry(
            user_id=user_id, scope_id=scope_id, candidate_name=candidate_name,
            queue_channel_id=queue_channel_id, queue_message_id=queue_message_id,
        )
        self.db.add(entry)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ManualReviewPendingError(
                ErrorContext(member_id=user_id, scope_id=scope_id),
            ) from e
        return entry

    async def remove_manual_entries(
        self, user_id: str | None = None, scope_id: str | None = None,
    ) -> list[ManualVerificationEntry]:
        """Delete entries matching the given filters; returns what was removed."""
        if user_id is None and scope_id is None:
            raise ValueError("remove_manual_entries needs user_id and/or scope_id")
        entries = await self.list_manual_entries(scope_id=scope_id, user_id=user_id)
        for entry in entries:
            await self.db.delete(entry)
        await self.db.flush()
        return entries

    # ─── Known names ─────────────────────────────────────────────

    async def known_names(self, member_id: str) -> list[str]:
        """Member's names, current name first."""
        result = await self.db.execute(
            select(KnownName)
            .where(KnownName.member_id == member_id)
            .order_by(KnownName.is_current.desc(), KnownName.created_at.desc()),
        )
        return [row.name for row in result.scalars().all()]

    async def name_owners(self, name: str) -> list[str]:
        result = await self.db.execute(
            select(KnownName.member_id).where(KnownName.name_lower == name.lower()),
        )
        return list(result.scalars().all())

    async def remember_name(self, member_id: str, name: str) -> None:
        """Record name as the member's current verified name."""
        result = await self.db.execute(
            select(KnownName).where(KnownName.member_id == member_id),
        )
        existing = None
        for row in result.scalars().all():
            row.is_current = row.name_lower == name.lower()
            if row.is_current:
                row.name = name
                existing = row
        if existing is None:
            self.db.add(KnownName(
                member_id=member_id, name=name, name_lower=name.lower(), is_current=True,
            ))
        await self.db.flush()

    # ─── Blacklist ───────────────────────────────────────────────

    async def find_blacklisted(self, community_id: str, names: list[str]) -> BlacklistEntry | None:
        lowered = {n.lower() for n in names if n}
        if not lowered:
            return None
        result = await self.db.execute(
            select(BlacklistEntry).where(
                BlacklistEntry.community_id == community_id,
                BlacklistEntry.name_lower.in_(lowered),
            ).limit(1),
        )
        return result.scalar_one_or_none()

    # ─── Logged counters ─────────────────────────────────────────

    async def increment_counter(self, member_id: str, key: CounterKey, amount: int = 1) -> int:
        result = await self.db.execute(
            select(LoggedCounter).where(
                LoggedCounter.member_id == member_id,
                LoggedCounter.scope == key.scope,
                LoggedCounter.category == key.category.value,
                LoggedCounter.subject == key.subject,
                LoggedCounter.outcome == key.outcome.value,
            ),
        )
        counter = result.scalar_one_or_none()
        if counter is None:
            counter = LoggedCounter(
                member_id=member_id, scope=key.scope, category=key.category.value,
                subject=key.subject, outcome=key.outcome.value, value=0,
            )
            self.db.add(counter)
        counter.value += amount
        await self.db.flush()
        return counter.value

    async def list_counters(self, member_id: str, scope: str | None = None) -> list[LoggedCounter]:
        query = select(LoggedCounter).where(LoggedCounter.member_id == member_id)
        if scope is not None:
            query = query.where(LoggedCounter.scope == scope)
        result = await self.db.execute(query.order_by(LoggedCounter.category, LoggedCounter.subject))
        return list(result.scalars().all())

    async def completed_runs(self, member_id: str, community_id: str) -> dict[str, int]:
        """Dungeon id -> logged completed runs for the member in the community."""
        result = await self.db.execute(
            select(LoggedCounter.subject, func.sum(LoggedCounter.value))
            .where(
                LoggedCounter.member_id == member_id,
                LoggedCounter.scope == community_id,
                LoggedCounter.category == CounterCategory.RUN.value,
                LoggedCounter.outcome == CounterOutcome.COMPLETED.value,
            )
            .group_by(LoggedCounter.subject),
        )
        return {subject: int(total or 0) for subject, total in result.all()}

