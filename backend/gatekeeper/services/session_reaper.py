"""Session Reaper — background task that times out sessions whose deadline elapsed.

Invariants:
    - Runs every reaper_interval_seconds until cancelled
    - Each sweep opens its own DB session; one failed sweep never stops the loop
    - Deadline checks are repeated inside the runner after every await, so a user
      event racing the sweep cannot be overwritten by TimedOut

Design Decisions:
    - Deadlines are also enforced lazily on every user event (effective_event);
      the reaper only guarantees members who never come back still get a TIMED_OUT
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncContextManager, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.errors import GatekeeperError
from gatekeeper.core.repository_protocols import BotGateway, ProfileService
from gatekeeper.core.session_registry import SessionRegistry
from gatekeeper.core.verification_state import SessionTimeouts
from gatekeeper.services.verification_runner import VerificationRunner

logger = logging.getLogger(__name__)


async def sweep_once(
    session_factory: Callable[[], AsyncContextManager[AsyncSession]],
    registry: SessionRegistry,
    profiles: ProfileService,
    gateway: BotGateway,
    timeouts: SessionTimeouts,
) -> int:
    """Time out every expired session once. Returns how many were closed."""
    if not registry.expired(datetime.now(timezone.utc)):
        return 0
    async with session_factory() as db:
        runner = VerificationRunner(db, registry, profiles, gateway, timeouts)
        expired = await runner.expire_due()
    if expired:
        logger.info("Reaper timed out %d sessions", len(expired))
    return len(expired)


async def run_reaper(
    session_factory: Callable[[], AsyncContextManager[AsyncSession]],
    registry: SessionRegistry,
    profiles: ProfileService,
    gateway: BotGateway,
    timeouts: SessionTimeouts,
    interval_seconds: float,
) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await sweep_once(session_factory, registry, profiles, gateway, timeouts)
        except GatekeeperError as e:
            logger.error(f"Reaper sweep failed: {e.message}", extra={"error_code": e.code})
        except Exception:
            logger.exception("Reaper sweep failed unexpectedly")
