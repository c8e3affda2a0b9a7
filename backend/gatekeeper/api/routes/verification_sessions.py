"""Verification Sessions — member-facing endpoints driving one session per (member, scope).

Invariants:
    - Every action returns the session as it stands after the transition,
      including terminal sessions (which are already gone from the registry)
    - GET only sees live sessions; a finished session is a 404
    - Routes never contain business logic (delegate to VerificationRunner)
"""

import logging

from fastapi import APIRouter, Depends, status

from gatekeeper.api.dependencies import get_runner
from gatekeeper.schemas.verification import (
    ConsentAnswer, NameSelection, SessionResponse, SessionStart,
)
from gatekeeper.services.verification_runner import VerificationRunner

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/scopes/{scope_id}/sessions", tags=["verification"],
)


@router.post(
    "", response_model=SessionResponse, status_code=status.HTTP_201_CREATED,
)
async def start_session(
    scope_id: str, body: SessionStart,
    runner: VerificationRunner = Depends(get_runner),
):
    """Start verifying member_id in the scope."""
    session = await runner.start(body.member_id, scope_id, body.display_name)
    return SessionResponse.from_session(session)


@router.get("/{member_id}", response_model=SessionResponse)
async def get_session(
    scope_id: str, member_id: str,
    runner: VerificationRunner = Depends(get_runner),
):
    return SessionResponse.from_session(runner.get_session(member_id, scope_id))


@router.post("/{member_id}/name", response_model=SessionResponse)
async def select_name(
    scope_id: str, member_id: str, body: NameSelection,
    runner: VerificationRunner = Depends(get_runner),
):
    session = await runner.select_name(member_id, scope_id, body.name)
    return SessionResponse.from_session(session)


@router.post("/{member_id}/check", response_model=SessionResponse)
async def request_check(
    scope_id: str, member_id: str,
    runner: VerificationRunner = Depends(get_runner),
):
    """Re-fetch the profile and evaluate it against the scope's requirements."""
    session = await runner.request_check(member_id, scope_id)
    return SessionResponse.from_session(session)


@router.post("/{member_id}/manual-consent", response_model=SessionResponse)
async def manual_consent(
    scope_id: str, member_id: str, body: ConsentAnswer,
    runner: VerificationRunner = Depends(get_runner),
):
    session = await runner.manual_consent(member_id, scope_id, body.accepted)
    return SessionResponse.from_session(session)


@router.post("/{member_id}/cancel", response_model=SessionResponse)
async def cancel_session(
    scope_id: str, member_id: str,
    runner: VerificationRunner = Depends(get_runner),
):
    session = await runner.cancel(member_id, scope_id)
    return SessionResponse.from_session(session)
