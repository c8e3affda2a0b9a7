"""Scopes — scope configuration, requirement policies and requirement summaries.

Invariants:
    - PUT is a full upsert; the stored policy is untouched by scope updates
    - Policies are stored in canonical form: policy_to_dict(policy_from_dict(body))
    - Deleting a scope closes its live sessions and purges its manual entries first
    - At most one main scope: a second is_main scope is a ConfigError
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.api.dependencies import get_registry, get_reviews
from gatekeeper.core.describe_requirements import describe_requirements
from gatekeeper.core.domain_types import ScopeId
from gatekeeper.core.errors import ConfigError, ErrorContext, ResourceNotFoundError
from gatekeeper.core.requirement_policy import policy_from_dict, policy_to_dict
from gatekeeper.core.session_registry import SessionRegistry
from gatekeeper.infrastructure.database import get_db
from gatekeeper.models import Scope
from gatekeeper.schemas.scope import (
    PolicyBody, RequirementsResponse, ScopeResponse, ScopeUpsert,
)
from gatekeeper.services.identity_store import IdentityStore
from gatekeeper.services.manual_review import ManualReviewCoordinator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/scopes", tags=["scopes"])


async def get_scope_or_404(scope_id: str, store: IdentityStore) -> Scope:
    scope = await store.get_scope(scope_id)
    if scope is None:
        raise ResourceNotFoundError("Scope", scope_id)
    return scope


@router.put("/{scope_id}", response_model=ScopeResponse)
async def upsert_scope(
    scope_id: str, body: ScopeUpsert, db: AsyncSession = Depends(get_db),
):
    store = IdentityStore(db)
    if body.is_main:
        result = await db.execute(
            select(Scope.id).where(Scope.is_main.is_(True), Scope.id != scope_id),
        )
        if result.first() is not None:
            raise ConfigError(
                "another scope is already the main scope", "is_main",
                ErrorContext(scope_id=scope_id),
            )
    scope = await store.upsert_scope(scope_id, **body.model_dump())
    await store.commit()
    logger.info("Scope saved", extra={"scope_id": scope_id})
    return scope


@router.get("/{scope_id}", response_model=ScopeResponse)
async def get_scope(scope_id: str, db: AsyncSession = Depends(get_db)):
    return await get_scope_or_404(scope_id, IdentityStore(db))


@router.delete("/{scope_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_scope(
    scope_id: str,
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    reviews: ManualReviewCoordinator = Depends(get_reviews),
):
    """Remove a scope and everything pending in it."""
    store = IdentityStore(db)
    scope = await get_scope_or_404(scope_id, store)
    closed = registry.remove_scope(ScopeId(scope_id))
    await reviews.purge_scope(scope_id)
    await store.delete_scope(scope)
    await store.commit()
    logger.info(
        "Scope deleted: %d sessions closed", len(closed), extra={"scope_id": scope_id},
    )


@router.get("/{scope_id}/policy")
async def get_policy(scope_id: str, db: AsyncSession = Depends(get_db)):
    scope = await get_scope_or_404(scope_id, IdentityStore(db))
    return policy_to_dict(policy_from_dict(scope.requirement_policy))


@router.put("/{scope_id}/policy")
async def set_policy(
    scope_id: str, body: PolicyBody, db: AsyncSession = Depends(get_db),
):
    """Replace the scope's requirement policy wholesale."""
    store = IdentityStore(db)
    scope = await get_scope_or_404(scope_id, store)
    stored = policy_to_dict(policy_from_dict(body.model_dump()))
    await store.set_policy(scope, stored)
    await store.commit()
    logger.info("Requirement policy replaced", extra={"scope_id": scope_id})
    return stored


@router.get("/{scope_id}/requirements", response_model=RequirementsResponse)
async def get_requirements(scope_id: str, db: AsyncSession = Depends(get_db)):
    """Human-readable requirement lines, as shown to members."""
    scope = await get_scope_or_404(scope_id, IdentityStore(db))
    return RequirementsResponse(
        scope_id=scope_id,
        requirements=describe_requirements(policy_from_dict(scope.requirement_policy)),
    )
