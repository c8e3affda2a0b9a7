"""KnownName ORM — names a member has verified under.

Invariants:
    - Unique per (member_id, name_lower)
    - name_lower is the lookup key for "is this name registered to someone else"
    - At most one row per member has is_current = True (the latest verified name)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from gatekeeper.db.base import Base


class KnownName(Base):
    __tablename__ = "known_names"
    __table_args__ = (
        UniqueConstraint("member_id", "name_lower", name="uq_known_name_member_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    member_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(32), nullable=False)
    name_lower: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
