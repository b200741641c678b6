"""
DevConnect Backend: Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment variables are set before any devconnect import so the
       settings singleton sees test values. Service and endpoint tests run
       against an in-memory SQLite database (aiosqlite) through a Store with
       row-level scoping switched off; the hosted auth API is replaced by an
       httpx.MockTransport.

Fixture Hierarchy (all function-scoped):
    db_engine ── store ── seed
                     └── test_client (also uses auth_transport)
    make_user, make_token: caller identities and signed access tokens
"""

import os
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup (before any devconnect import)
# ══════════════════════════════════════════════════════════════════════════

TEST_JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes!!"
TEST_AUTH_URL = "http://auth.test"

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SUPABASE_URL"] = TEST_AUTH_URL
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
os.environ["SUPABASE_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["ENFORCE_ROW_LEVEL_SECURITY"] = "false"
os.environ["RETRY_MAX_ATTEMPTS"] = "3"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx  # noqa: E402
import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from devconnect.database import Base, Store  # noqa: E402
from devconnect.dependencies import AuthenticatedUser  # noqa: E402
from devconnect.models import Comment, CommentLike, Profile, Project  # noqa: E402
from devconnect.services.auth_client import SupabaseAuthClient  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test; StaticPool keeps the one connection alive."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(db_engine) -> Store:
    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    return Store(factory, enforce_row_level_security=False)


class Seeder:
    """Inserts rows directly, bypassing the services under test."""

    def __init__(self, store: Store):
        self.store = store

    async def profile(self, **fields: Any) -> Profile:
        fields.setdefault("id", uuid.uuid4())
        async with self.store.anonymous() as session:
            profile = Profile(**fields)
            session.add(profile)
        return profile

    async def project(self, author_id: uuid.UUID, **fields: Any) -> Project:
        fields.setdefault("title", "Portfolio site")
        fields.setdefault("description", "A personal portfolio built with FastAPI")
        fields.setdefault("tech_stack", ["Python", "FastAPI"])
        async with self.store.anonymous() as session:
            project = Project(author_id=author_id, **fields)
            session.add(project)
        return project

    async def comment(
        self,
        author_id: uuid.UUID,
        project_id: uuid.UUID,
        content: str = "Nice work!",
        **fields: Any,
    ) -> Comment:
        async with self.store.anonymous() as session:
            comment = Comment(author_id=author_id, project_id=project_id, content=content, **fields)
            session.add(comment)
        return comment

    async def get(self, model, pk) -> Any:
        async with self.store.anonymous() as session:
            return await session.get(model, pk)

    async def like_rows(self, comment_id: uuid.UUID) -> List[CommentLike]:
        from sqlalchemy import select

        async with self.store.anonymous() as session:
            result = await session.scalars(
                select(CommentLike).where(CommentLike.comment_id == comment_id)
            )
            return list(result.all())


@pytest.fixture
def seed(store) -> Seeder:
    return Seeder(store)


# ══════════════════════════════════════════════════════════════════════════
# Identities
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_token() -> Callable[..., str]:
    """
    Signs an access token the way the hosted auth service does (HS256,
    audience "authenticated").
    """

    def _make(sub: Optional[uuid.UUID] = None, expires_in: int = 3600, **claims: Any) -> str:
        now = int(time.time())
        payload: Dict[str, Any] = {
            "sub": str(sub or uuid.uuid4()),
            "aud": "authenticated",
            "role": "authenticated",
            "email": "dev@example.com",
            "iat": now,
            "exp": now + expires_in,
        }
        payload.update(claims)
        return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
def make_user() -> Callable[..., AuthenticatedUser]:
    def _make(user_id: Optional[uuid.UUID] = None, email: str = "dev@example.com") -> AuthenticatedUser:
        uid = user_id or uuid.uuid4()
        return AuthenticatedUser(
            id=uid,
            email=email,
            token="test-token",
            claims={"sub": str(uid), "role": "authenticated"},
        )

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Hosted Auth API
# ══════════════════════════════════════════════════════════════════════════

class AuthAPIStub:
    """
    Minimal GoTrue stand-in for httpx.MockTransport.

    Tests set `responses[(method, path)]` to a (status, json) pair or to an
    exception instance; every request is recorded in `calls`.
    """

    def __init__(self):
        self.calls: List[httpx.Request] = []
        self.responses: Dict[tuple, Any] = {("GET", "/auth/v1/health"): (200, {"version": "test"})}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        outcome = self.responses.get((request.method, request.url.path))
        if outcome is None:
            return httpx.Response(404, json={"msg": "not found"})
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, Exception):
            raise outcome
        status, body = outcome
        return httpx.Response(status, json=body) if body is not None else httpx.Response(status)


@pytest.fixture
def auth_api() -> AuthAPIStub:
    return AuthAPIStub()


@pytest.fixture
def auth_client(auth_api) -> SupabaseAuthClient:
    return SupabaseAuthClient(
        base_url=f"{TEST_AUTH_URL}/auth/v1",
        api_key="test-anon-key",
        timeout=5,
        transport=httpx.MockTransport(auth_api),
    )


def auth_user_payload(user_id: uuid.UUID, email: str = "dev@example.com", **metadata: Any) -> Dict[str, Any]:
    return {
        "id": str(user_id),
        "aud": "authenticated",
        "email": email,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "user_metadata": metadata,
    }


def session_payload(user_id: uuid.UUID, **metadata: Any) -> Dict[str, Any]:
    return {
        "access_token": "access-token",
        "refresh_token": "refresh-token",
        "token_type": "bearer",
        "expires_in": 3600,
        "expires_at": int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp()),
        "user": auth_user_payload(user_id, **metadata),
    }


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(store, auth_client):
    """
    HTTPX AsyncClient talking to a fresh app over ASGITransport.

    The app's store and auth client are swapped for the test doubles through
    FastAPI dependency overrides.
    """
    from devconnect.dependencies import get_auth_client, get_store
    from devconnect.main import create_app

    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_auth_client] = lambda: auth_client

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await auth_client.aclose()
