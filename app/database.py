import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ---------------------------------------------------------------------------
# Tagged store errors
# ---------------------------------------------------------------------------

class StoreError(Exception):
    """A relational write failed for a reason other than a uniqueness clash."""


class StoreConflictError(StoreError):
    """A unique constraint rejected the write (duplicate name, email...)."""


_UNIQUE_VIOLATION_SQLSTATE = "23505"
_UNIQUE_VIOLATION_MARKERS = ("unique constraint", "duplicate key")


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == _UNIQUE_VIOLATION_SQLSTATE:
        return True
    text = str(orig).lower()
    return any(marker in text for marker in _UNIQUE_VIOLATION_MARKERS)


# ---------------------------------------------------------------------------
# Transaction scope
# ---------------------------------------------------------------------------

class RelationalStore:
    """
    Runs units of work inside a single database transaction.

    ``run_in_transaction(fn)`` awaits ``fn(session)`` inside
    ``session.begin()``: a normal return commits, any exception rolls back
    every statement issued through that session.  Integrity errors are
    re-raised as tagged ``StoreConflictError`` / ``StoreError`` so callers
    never need to inspect driver messages.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def run_in_transaction(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    return await fn(session)
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                logger.debug("Unique constraint violation: %s", exc.orig)
                raise StoreConflictError(str(exc.orig)) from exc
            raise StoreError(str(exc.orig)) from exc
