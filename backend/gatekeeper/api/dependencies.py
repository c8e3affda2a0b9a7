"""API Dependencies — shared collaborators resolved per request.

Invariants:
    - SessionRegistry, ProfileService and BotGateway live on app.state (set in lifespan)
    - Tests replace them through app.dependency_overrides, never by patching modules
    - One VerificationRunner / ManualReviewCoordinator per request, bound to its DB session
"""

from datetime import timedelta

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.config import get_settings
from gatekeeper.core.repository_protocols import BotGateway, ProfileService
from gatekeeper.core.session_registry import SessionRegistry
from gatekeeper.core.verification_state import SessionTimeouts
from gatekeeper.infrastructure.database import get_db
from gatekeeper.services.manual_review import ManualReviewCoordinator
from gatekeeper.services.verification_runner import VerificationRunner


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_profiles(request: Request) -> ProfileService:
    return request.app.state.profiles


def get_gateway(request: Request) -> BotGateway:
    return request.app.state.gateway


def get_timeouts() -> SessionTimeouts:
    settings = get_settings()
    return SessionTimeouts(
        name_selection=timedelta(seconds=settings.name_selection_timeout_seconds),
        proof_window=timedelta(seconds=settings.proof_window_seconds),
        manual_consent=timedelta(seconds=settings.manual_consent_timeout_seconds),
        check_stall=timedelta(seconds=settings.check_stall_timeout_seconds),
    )


def get_runner(
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    profiles: ProfileService = Depends(get_profiles),
    gateway: BotGateway = Depends(get_gateway),
    timeouts: SessionTimeouts = Depends(get_timeouts),
) -> VerificationRunner:
    return VerificationRunner(db, registry, profiles, gateway, timeouts)


def get_reviews(
    db: AsyncSession = Depends(get_db),
    gateway: BotGateway = Depends(get_gateway),
) -> ManualReviewCoordinator:
    return ManualReviewCoordinator(db, gateway)
