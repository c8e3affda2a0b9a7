"""Initial schema — scopes, manual entries, known names, blacklist, logged counters.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "scopes",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("community_id", sa.String(32), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("is_main", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("verified_role_id", sa.String(32), nullable=True),
        sa.Column("manual_review_channel_id", sa.String(32), nullable=True),
        sa.Column("logging_channels", sa.JSON, nullable=False),
        sa.Column("success_message", sa.Text, nullable=True),
        sa.Column("requirement_policy", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_scopes_community_id", "scopes", ["community_id"])

    op.create_table(
        "manual_verification_entries",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("scope_id", sa.String(64), nullable=False),
        sa.Column("candidate_name", sa.String(32), nullable=False),
        sa.Column("queue_channel_id", sa.String(32), nullable=False),
        sa.Column("queue_message_id", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "scope_id", name="uq_manual_entry_user_scope"),
    )
    op.create_index("ix_manual_verification_entries_user_id", "manual_verification_entries", ["user_id"])
    op.create_index("ix_manual_verification_entries_scope_id", "manual_verification_entries", ["scope_id"])

    op.create_table(
        "known_names",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("member_id", sa.String(32), nullable=False),
        sa.Column("name", sa.String(32), nullable=False),
        sa.Column("name_lower", sa.String(32), nullable=False),
        sa.Column("is_current", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("member_id", "name_lower", name="uq_known_name_member_name"),
    )
    op.create_index("ix_known_names_member_id", "known_names", ["member_id"])
    op.create_index("ix_known_names_name_lower", "known_names", ["name_lower"])

    op.create_table(
        "blacklist_entries",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("community_id", sa.String(32), nullable=False),
        sa.Column("name_lower", sa.String(32), nullable=False),
        sa.Column("member_id", sa.String(32), nullable=True),
        sa.Column("reason", sa.Text, nullable=False, server_default=""),
        sa.Column("moderation_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_blacklist_entries_community_id", "blacklist_entries", ["community_id"])
    op.create_index("ix_blacklist_entries_name_lower", "blacklist_entries", ["name_lower"])

    op.create_table(
        "logged_counters",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("member_id", sa.String(32), nullable=False),
        sa.Column("scope", sa.String(64), nullable=False),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("subject", sa.String(64), nullable=False, server_default=""),
        sa.Column("outcome", sa.String(16), nullable=False),
        sa.Column("value", sa.Integer, nullable=False, server_default="0"),
        sa.UniqueConstraint(
            "member_id", "scope", "category", "subject", "outcome",
            name="uq_logged_counter_key",
        ),
    )
    op.create_index("ix_logged_counters_member_id", "logged_counters", ["member_id"])


def downgrade() -> None:
    op.drop_table("logged_counters")
    op.drop_table("blacklist_entries")
    op.drop_table("known_names")
    op.drop_table("manual_verification_entries")
    op.drop_table("scopes")
