"""Database Session Manager — async engine, session scope with rollback, readiness check.

Invariants:
    - Every session rolls back on a SQLAlchemy exception before it is re-raised as DatabaseError
    - IntegrityError is re-raised as DatabaseError(operation="commit") so callers can
      distinguish unique-constraint races from connectivity failures
    - Pool uses pool_pre_ping to drop stale connections

Design Decisions:
    - Module-level db_manager set by init_db() inside the FastAPI lifespan,
      so importing this module never opens a connection
    - expire_on_commit=False: ORM rows stay readable after commit in async code
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from gatekeeper.core.errors import DatabaseError

logger = logging.getLogger(__name__)


class DatabaseSessionManager:
    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session; roll back and map driver errors on failure."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.error("DB integrity error", extra={"error_code": "DATABASE_ERROR"})
            raise DatabaseError(str(e.orig), "commit") from e
        except OperationalError as e:
            await session.rollback()
            logger.error("DB operational error: %s", e, extra={"error_code": "DATABASE_ERROR"})
            raise DatabaseError("Connection or operational error", "execute") from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("SQLAlchemy error: %s", e, extra={"error_code": "DATABASE_ERROR"})
            raise DatabaseError("Database operation failed", "query") from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Readiness probe: can we run SELECT 1?"""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except DatabaseError:
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
