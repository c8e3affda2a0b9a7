"""LoggedCounter ORM — per-member counters keyed by a structured composite key.

Invariants:
    - Unique per (member_id, scope, category, subject, outcome)
    - scope is the community id; subject is "" for points
    - value only ever grows through append-or-increment
"""

import uuid

from sqlalchemy import String, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from gatekeeper.db.base import Base


class LoggedCounter(Base):
    __tablename__ = "logged_counters"
    __table_args__ = (
        UniqueConstraint(
            "member_id", "scope", "category", "subject", "outcome",
            name="uq_logged_counter_key",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    member_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    scope: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    subject: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    outcome: Mapped[str] = mapped_column(String(16), nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
