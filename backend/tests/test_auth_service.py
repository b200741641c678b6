"""
DevConnect Backend: Auth Service & Client Tests
=================================================

What we test:
    ✅ Registration: username conflicts, existing e-mail, session handling
    ✅ Login error mapping (bad credentials → 401, outage → 502)
    ✅ Transport retries (tenacity) on connection failures, capped jittered backoff
    ✅ Logout tolerance and current-user profile merge

The hosted auth API is the AuthAPIStub from conftest.py.
"""

import json
import uuid
import warnings
from unittest.mock import MagicMock

import httpx
import pytest

from devconnect.exceptions import (
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    RateLimitError,
)
from devconnect.services.auth_client import AuthAPIError, backoff
from devconnect.services.auth_service import AuthService

from conftest import auth_user_payload, session_payload


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_sends_metadata(self, store, auth_api, auth_client):
        user_id = uuid.uuid4()
        auth_api.responses[("POST", "/auth/v1/signup")] = (
            200,
            session_payload(user_id, full_name="Ada Lovelace", username="ada"),
        )

        result = await AuthService(store, auth_client).register(
            "Ada Lovelace", "ada", "ada@example.com", "s3cret-pass"
        )

        assert result.success
        assert result.data.user.id == user_id
        assert result.data.user.username == "ada"
        assert result.data.session.access_token == "access-token"

        sent = json.loads(auth_api.calls[-1].content)
        assert sent["email"] == "ada@example.com"
        assert sent["data"] == {"full_name": "Ada Lovelace", "username": "ada"}
        assert auth_api.calls[-1].headers["apikey"] == "test-anon-key"

    @pytest.mark.asyncio
    async def test_register_without_session(self, store, auth_api, auth_client):
        # E-mail confirmation on: the API returns the bare user
        user_id = uuid.uuid4()
        auth_api.responses[("POST", "/auth/v1/signup")] = (200, auth_user_payload(user_id))

        result = await AuthService(store, auth_client).register("A", "a_user", "a@example.com", "password1")

        assert result.data.user.id == user_id
        assert result.data.session is None

    @pytest.mark.asyncio
    async def test_username_taken_is_case_insensitive(self, store, seed, auth_api, auth_client):
        await seed.profile(username="Ada")

        result = await AuthService(store, auth_client).register("Ada", "ada", "new@example.com", "password1")

        assert isinstance(result.error, ConflictError)
        assert result.error.message == "Username is already taken"
        # Never reached the auth API
        assert auth_api.calls == []

    @pytest.mark.asyncio
    async def test_existing_email(self, store, auth_api, auth_client):
        auth_api.responses[("POST", "/auth/v1/signup")] = (
            422,
            {"code": 422, "error_code": "user_already_exists", "msg": "User already registered"},
        )

        result = await AuthService(store, auth_client).register("A", "someone", "a@example.com", "password1")

        assert isinstance(result.error, ConflictError)
        assert result.error.status_code == 409


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_attaches_profile(self, store, seed, auth_api, auth_client):
        user_id = uuid.uuid4()
        await seed.profile(id=user_id, username="ada")
        auth_api.responses[("POST", "/auth/v1/token")] = (200, session_payload(user_id))

        result = await AuthService(store, auth_client).login("ada@example.com", "password1")

        assert result.data.user.profile.username == "ada"
        request = auth_api.calls[-1]
        assert request.url.params["grant_type"] == "password"

    @pytest.mark.asyncio
    async def test_bad_credentials(self, store, auth_api, auth_client):
        auth_api.responses[("POST", "/auth/v1/token")] = (
            400,
            {"error": "invalid_grant", "error_description": "Invalid login credentials"},
        )

        result = await AuthService(store, auth_client).login("ada@example.com", "wrong")

        assert isinstance(result.error, AuthenticationError)
        assert result.error.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_upstream_outage(self, store, auth_api, auth_client):
        auth_api.responses[("POST", "/auth/v1/token")] = (503, {"msg": "down"})

        result = await AuthService(store, auth_client).login("ada@example.com", "password1")

        assert isinstance(result.error, ExternalServiceError)
        assert result.error.status_code == 502

    @pytest.mark.asyncio
    async def test_upstream_throttling(self, store, auth_api, auth_client):
        auth_api.responses[("POST", "/auth/v1/token")] = (429, {"msg": "Too many attempts"})

        result = await AuthService(store, auth_client).login("ada@example.com", "password1")

        assert isinstance(result.error, RateLimitError)
        assert result.error.details["retry_after"] == 300

    @pytest.mark.asyncio
    async def test_connection_failures_are_retried(self, store, auth_api, auth_client):
        user_id = uuid.uuid4()
        auth_api.responses[("POST", "/auth/v1/token")] = [
            httpx.ConnectError("connection refused"),
            (200, session_payload(user_id)),
        ]

        result = await AuthService(store, auth_client).login("ada@example.com", "password1")

        assert result.success
        assert len(auth_api.calls) == 2

    @pytest.mark.asyncio
    async def test_retries_give_up(self, store, auth_api, auth_client):
        auth_api.responses[("POST", "/auth/v1/token")] = httpx.ConnectError("connection refused")

        result = await AuthService(store, auth_client).login("ada@example.com", "password1")

        assert isinstance(result.error, ExternalServiceError)
        # RETRY_MAX_ATTEMPTS=3 in conftest
        assert len(auth_api.calls) == 3

    def test_backoff_stays_under_cap(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            wait = backoff(0.5, 4.0)
            for attempt in range(1, 8):
                assert 0 <= wait(MagicMock(attempt_number=attempt)) <= 4.0


class TestSession:

    @pytest.mark.asyncio
    async def test_logout_ignores_revoked_session(self, store, auth_api, auth_client, make_user):
        auth_api.responses[("POST", "/auth/v1/logout")] = (401, {"msg": "session not found"})
        result = await AuthService(store, auth_client).logout(make_user())
        assert result.success

    @pytest.mark.asyncio
    async def test_logout_sends_bearer_token(self, store, auth_api, auth_client, make_user):
        auth_api.responses[("POST", "/auth/v1/logout")] = (204, None)
        await AuthService(store, auth_client).logout(make_user())
        assert auth_api.calls[-1].headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_current_user_merges_profile(self, store, seed, auth_api, auth_client, make_user):
        user = make_user()
        await seed.profile(id=user.id, username="renamed", full_name="Ada L.")
        auth_api.responses[("GET", "/auth/v1/user")] = (
            200,
            auth_user_payload(user.id, username="original", full_name="Ada"),
        )

        result = await AuthService(store, auth_client).current_user(user)

        assert result.data.username == "renamed"
        assert result.data.full_name == "Ada L."
        assert result.data.profile.id == user.id

    @pytest.mark.asyncio
    async def test_refresh(self, store, auth_api, auth_client):
        user_id = uuid.uuid4()
        auth_api.responses[("POST", "/auth/v1/token")] = (200, session_payload(user_id))

        result = await AuthService(store, auth_client).refresh("refresh-token")

        assert result.data.session.refresh_token == "refresh-token"
        assert auth_api.calls[-1].url.params["grant_type"] == "refresh_token"


class TestAuthAPIError:

    def test_message_and_code(self):
        error = AuthAPIError(422, {"error_code": "weak_password", "msg": "Password too weak"})
        assert error.message == "Password too weak"
        assert error.error_code == "weak_password"

    def test_empty_payload(self):
        error = AuthAPIError(500)
        assert error.message == "unknown error"
        assert error.error_code is None

    @pytest.mark.asyncio
    async def test_health_check(self, auth_api, auth_client):
        assert await auth_client.health_check() is True
        auth_api.responses[("GET", "/auth/v1/health")] = (500, {"msg": "down"})
        assert await auth_client.health_check() is False
