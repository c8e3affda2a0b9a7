"""Manual Reviews — moderator queue listing, dispositions and membership cleanup triggers.

Invariants:
    - Dispositions are applied by ManualReviewCoordinator; routes only translate
    - A departed member loses every pending entry and every live session
    - ConfigError on a disposition keeps the entry and surfaces as 409
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from gatekeeper.api.dependencies import get_registry, get_reviews
from gatekeeper.core.domain_types import MemberId
from gatekeeper.core.session_registry import SessionRegistry
from gatekeeper.core.verification_state import ModeratorDisposed
from gatekeeper.schemas.manual_review import (
    DispositionBody, DispositionResponse, ManualEntryResponse, MemberDeparted,
    PurgeResponse,
)
from gatekeeper.services.manual_review import ManualReviewCoordinator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/manual-reviews", tags=["manual-reviews"])


@router.get("", response_model=list[ManualEntryResponse])
async def list_pending(
    scope_id: str,
    reviews: ManualReviewCoordinator = Depends(get_reviews),
):
    """Pending entries for one scope, oldest first."""
    return await reviews.list_pending(scope_id)


@router.post("/{entry_id}/disposition", response_model=DispositionResponse)
async def dispose_entry(
    entry_id: UUID, body: DispositionBody,
    reviews: ManualReviewCoordinator = Depends(get_reviews),
):
    status = await reviews.dispose(
        ModeratorDisposed(entry_id, body.moderator_id, body.disposition),
    )
    return DispositionResponse(entry_id=entry_id, status=status)


@router.post("/member-departed", response_model=PurgeResponse)
async def member_departed(
    body: MemberDeparted,
    reviews: ManualReviewCoordinator = Depends(get_reviews),
    registry: SessionRegistry = Depends(get_registry),
):
    """Called by the bot when a member leaves the community."""
    closed = registry.remove_member(MemberId(body.member_id))
    purged = await reviews.purge_member(body.member_id)
    logger.info(
        "Member departed: %d sessions closed", len(closed),
        extra={"member_id": body.member_id},
    )
    return PurgeResponse(purged_entries=purged, closed_sessions=len(closed))
