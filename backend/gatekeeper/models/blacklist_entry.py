"""BlacklistEntry ORM — names barred from verifying in a community.

Invariants:
    - Read-only from this service; the moderation subsystem owns writes
    - name_lower is matched case-insensitively against profile names and histories
    - moderation_id is shown to the member for appeals
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from gatekeeper.db.base import Base


class BlacklistEntry(Base):
    __tablename__ = "blacklist_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    community_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name_lower: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    member_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    moderation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
