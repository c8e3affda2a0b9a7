"""Verification Schemas — request/response models for verification session endpoints.

Invariants:
    - member_id is a non-empty platform id string
    - NameSelection.name is stripped; letter/length validation stays in core.candidate_names
      so the same rule guards both the API and the runner
    - SessionResponse never exposes the evaluation snapshot
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from gatekeeper.core.domain_types import TerminalOutcome, VerificationState
from gatekeeper.core.verification_state import VerificationSession


class SessionStart(BaseModel):
    member_id: str = Field(min_length=1, max_length=32)
    display_name: str | None = Field(None, max_length=100)


class NameSelection(BaseModel):
    name: str = Field(min_length=1, max_length=32)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class ConsentAnswer(BaseModel):
    accepted: bool


class IssueResponse(BaseModel):
    key: str
    value: str
    log: str
    severity: str


class SessionResponse(BaseModel):
    """Public view of a session. outcome is set only once state is terminal."""
    member_id: str
    scope_id: str
    state: VerificationState
    outcome: TerminalOutcome | None = None
    deadline: datetime
    expires_at: datetime | None = None
    name_options: list[str] = []
    candidate_name: str | None = None
    proof_code: str | None = None
    requirements: list[str] = []
    issues: list[IssueResponse] = []
    moderation_id: str | None = None

    @classmethod
    def from_session(cls, session: VerificationSession) -> "SessionResponse":
        return cls(
            member_id=session.member_id,
            scope_id=session.scope_id,
            state=session.state,
            outcome=session.outcome,
            deadline=session.deadline,
            expires_at=session.expires_at,
            name_options=session.name_options,
            candidate_name=session.candidate_name,
            proof_code=session.proof_code,
            requirements=session.requirements,
            issues=[
                IssueResponse(**issue.to_dict(), severity=issue.severity.value)
                for issue in session.issues
            ],
            moderation_id=session.moderation_id,
        )
