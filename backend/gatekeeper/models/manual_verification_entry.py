"""ManualVerificationEntry ORM — a pending human review of one member in one scope.

Invariants:
    - Unique per (user_id, scope_id): enforced by check-then-insert AND a DB constraint
    - Deleted on accept/deny, kept on discuss and on ConfigError refusals
    - queue_channel_id / queue_message_id locate the review item for best-effort deletion
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from gatekeeper.db.base import Base


class ManualVerificationEntry(Base):
    __tablename__ = "manual_verification_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "scope_id", name="uq_manual_entry_user_scope"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    scope_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    candidate_name: Mapped[str] = mapped_column(String(32), nullable=False)
    queue_channel_id: Mapped[str] = mapped_column(String(32), nullable=False)
    queue_message_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
