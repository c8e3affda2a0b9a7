"""Logged Counters — increments written by the raid/attendance subsystem.

Invariants:
    - Counters are keyed by the structured CounterKey; legacy keys are parsed at the boundary
    - Increments commit immediately and return the new value
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.infrastructure.database import get_db
from gatekeeper.schemas.counter import CounterIncrement, CounterResponse
from gatekeeper.services.identity_store import IdentityStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/members/{member_id}/counters", tags=["counters"])


@router.post("", response_model=CounterResponse)
async def increment_counter(
    member_id: str, body: CounterIncrement, db: AsyncSession = Depends(get_db),
):
    store = IdentityStore(db)
    key = body.counter_key()
    value = await store.increment_counter(member_id, key, body.amount)
    await store.commit()
    return CounterResponse(
        scope=key.scope, category=key.category.value, subject=key.subject,
        outcome=key.outcome.value, value=value,
    )


@router.get("", response_model=list[CounterResponse])
async def list_counters(
    member_id: str, scope: str | None = None, db: AsyncSession = Depends(get_db),
):
    return await IdentityStore(db).list_counters(member_id, scope)
