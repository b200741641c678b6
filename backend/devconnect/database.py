"""
DevConnect Backend: Data Store Access
=======================================

What:  Async SQLAlchemy engine, declarative Base, and `Store`, the connection
       factory handing out anonymous or caller-scoped sessions.
How:   Each `Store` context opens one AsyncSession inside one transaction. It
       commits when the block exits cleanly and rolls back on any exception.
       On PostgreSQL the session first assumes the Supabase `anon` or
       `authenticated` role and publishes the caller's JWT claims, so the
       database's row-level security policies decide what the caller may
       read or change.
Who:   Services receive a Store in their constructor; routes obtain the
       process-wide one through `get_store()` in dependencies.py.

Scoping (PostgreSQL only):
    anonymous():  SET LOCAL ROLE anon
    scoped(user): select set_config('request.jwt.claims', <claims json>, true)
                  select set_config('request.jwt.claim.sub', <user id>, true)
                  SET LOCAL ROLE authenticated
    Both are transaction-local, so pooled connections never leak identity.
"""

import json
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from devconnect.config import settings

if TYPE_CHECKING:
    from devconnect.dependencies import AuthenticatedUser


def build_engine(url: str) -> AsyncEngine:
    """Create the async engine; pool sizing only applies to server databases."""
    options = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(url, **options)


engine = build_engine(settings.database_url)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models (shared metadata for Alembic)."""
    pass


class Store:
    """
    Connection factory for the hosted database.

    anonymous() is for public reads; scoped(user) is required for every
    mutation so the row-level policies see the caller's identity.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        enforce_row_level_security: Optional[bool] = None,
    ):
        self._session_factory = session_factory
        self._enforce_rls = (
            settings.enforce_row_level_security
            if enforce_row_level_security is None
            else enforce_row_level_security
        )

    @asynccontextmanager
    async def anonymous(self) -> AsyncIterator[AsyncSession]:
        async with self._transaction() as session:
            if self._uses_rls(session):
                await session.execute(text("SET LOCAL ROLE anon"))
            yield session

    @asynccontextmanager
    async def scoped(self, user: "AuthenticatedUser") -> AsyncIterator[AsyncSession]:
        async with self._transaction() as session:
            if self._uses_rls(session):
                claims = dict(user.claims or {})
                claims.setdefault("sub", str(user.id))
                claims.setdefault("role", "authenticated")
                await session.execute(
                    text("select set_config('request.jwt.claims', :claims, true)"),
                    {"claims": json.dumps(claims, default=str)},
                )
                await session.execute(
                    text("select set_config('request.jwt.claim.sub', :sub, true)"),
                    {"sub": str(user.id)},
                )
                await session.execute(text("SET LOCAL ROLE authenticated"))
            yield session

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    def _uses_rls(self, session: AsyncSession) -> bool:
        return self._enforce_rls and session.bind.dialect.name == "postgresql"


default_store = Store(async_session_factory)


async def dispose_engine() -> None:
    """Close all pooled connections (application shutdown)."""
    await engine.dispose()
