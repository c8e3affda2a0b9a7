"""Scope ORM — a community (main scope) or sub-community unit members verify into.

Invariants:
    - id is the scope identifier: "MAIN" for the main scope, otherwise the sub-scope id
    - At most one row has is_main = True per deployment
    - requirement_policy is the JSON form produced by core.requirement_policy.policy_to_dict
    - logging_channels maps ChannelRole value -> channel id; missing roles drop messages

Design Decisions:
    - JSON column for the policy: replaced wholesale, never queried field by field
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, Boolean, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from gatekeeper.db.base import Base


class Scope(Base):
    __tablename__ = "scopes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    community_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_main: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_role_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    manual_review_channel_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    logging_channels: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    success_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    requirement_policy: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
