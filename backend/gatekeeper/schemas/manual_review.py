"""Manual Review Schemas — queue entries and moderator dispositions."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from gatekeeper.core.domain_types import Disposition


class DispositionBody(BaseModel):
    moderator_id: str = Field(min_length=1, max_length=32)
    disposition: Disposition


class DispositionResponse(BaseModel):
    entry_id: UUID
    status: str


class ManualEntryResponse(BaseModel):
    id: UUID
    user_id: str
    scope_id: str
    candidate_name: str
    queue_channel_id: str
    queue_message_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberDeparted(BaseModel):
    member_id: str = Field(min_length=1, max_length=32)


class PurgeResponse(BaseModel):
    purged_entries: int
    closed_sessions: int
