"""Database Session Manager - async engine, per-request sessions and write transactions.

Invariants:
    - A session that sees an exception is rolled back before it is closed
    - SQLAlchemy exceptions never reach a route: translate_db_error maps them into the
      ClarityError hierarchy (core/errors.py)
    - Unique violations become 409 DUPLICATE_RECORD, foreign key violations 400

Design Decisions:
    - Singleton db_manager created by the lifespan (or the seed script); get_db reads it
    - expire_on_commit=False: no lazy reloads after commit in async context
    - run_in_transaction wraps multi-step writes (deal + activity, customer + company,
      delete + detach): one commit, everything rolled back on failure, domain errors
      pass through untouched
    - SQLite URLs skip the pool sizing arguments so tests and local runs use aiosqlite
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from clarity_crm.core.errors import (
    ClarityError,
    ConflictError,
    DatabaseError,
    DuplicateRecordError,
    ForeignKeyViolationError,
    TransactionError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def map_integrity_error(exc: IntegrityError) -> ClarityError:
    detail = str(exc.orig if exc.orig is not None else exc).lower()
    if "unique" in detail or "duplicate" in detail:
        return DuplicateRecordError()
    if "foreign key" in detail:
        return ForeignKeyViolationError()
    return ConflictError(
        "The change would violate a required relation", code="RELATION_VIOLATION",
    )


def translate_db_error(exc: SQLAlchemyError, fallback: ClarityError) -> ClarityError:
    """The client-facing error for a SQLAlchemy failure; `fallback` when unclassified."""
    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error: {exc.orig or exc}")
        return map_integrity_error(exc)
    if isinstance(exc, OperationalError):
        logger.error(f"Database unavailable: {exc}")
        return DatabaseError("Connection or operational error", "execute")
    if isinstance(exc, DBAPIError):
        logger.error(f"Database driver error: {exc}")
        return DatabaseError("Database driver error", "query")
    logger.error(f"{fallback.message}: {exc}", exc_info=True)
    return fallback


class DatabaseSessionManager:
    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            raise translate_db_error(
                e, DatabaseError("Database operation failed", "unknown"),
            ) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except ClarityError as e:
            logger.error(f"Database health check failed: {e.message}")
            return False


async def run_in_transaction(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    error_message: str = "Transaction failed",
) -> T:
    """Run `operation` and commit once; roll back all of it on any failure."""
    try:
        result = await operation()
        await db.commit()
        return result
    except ClarityError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        raise translate_db_error(e, TransactionError(error_message)) from e
    except Exception as e:
        await db.rollback()
        logger.error(f"{error_message}: {e}", exc_info=True)
        raise TransactionError(error_message) from e


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
