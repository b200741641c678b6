"""
DevConnect Backend: Auth Service
==================================

What:  Account operations on top of the hosted auth API, plus the profile
       lookups that accompany them.
How:   SupabaseAuthClient does the remote calls. Auth API error statuses are
       mapped here onto the error taxonomy by operation and upstream error
       code: a bad password is a 401, an already-registered e-mail a 409,
       and anything 5xx an ExternalServiceError.

Registration:
    1. username must not already belong to a profile (409)
    2. POST /signup with full_name and username as user metadata
       (the database trigger on auth.users creates the profile row)
    3. the response carries a session only when e-mail confirmation is off
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import func, select

from devconnect.database import Store
from devconnect.dependencies import AuthenticatedUser
from devconnect.exceptions import (
    ApiError,
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    RateLimitError,
    ValidationError,
)
from devconnect.models import Profile
from devconnect.schemas.auth import AuthSession, AuthUser, SessionTokens
from devconnect.schemas.profile import ProfileResponse
from devconnect.services.auth_client import AuthAPIError, SupabaseAuthClient
from devconnect.services.base import ServiceResult, service_operation

logger = logging.getLogger(__name__)

# Upstream error codes meaning "this e-mail already has an account"
EXISTING_ACCOUNT_CODES = {"user_already_exists", "email_exists"}


def _map_auth_error(exc: AuthAPIError, unauthorized_message: str) -> ApiError:
    if exc.status_code >= 500:
        return ExternalServiceError("auth", "Authentication service unavailable")
    if exc.error_code in EXISTING_ACCOUNT_CODES:
        return ConflictError("Email is already registered")
    if exc.status_code in (400, 401, 403):
        return AuthenticationError(unauthorized_message)
    if exc.status_code == 422:
        return ValidationError("Invalid request body", {"auth": exc.message})
    if exc.status_code == 429:
        return RateLimitError(exc.message)
    return ExternalServiceError("auth", exc.message)


def _session_tokens(payload: Dict[str, Any]) -> Optional[SessionTokens]:
    if not payload.get("access_token"):
        return None
    return SessionTokens(
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token", ""),
        token_type=payload.get("token_type", "bearer"),
        expires_in=payload.get("expires_in"),
        expires_at=payload.get("expires_at"),
    )


class AuthService:

    def __init__(self, store: Store, client: SupabaseAuthClient):
        self._store = store
        self._client = client

    @service_operation("register")
    async def register(
        self, full_name: str, username: str, email: str, password: str
    ) -> ServiceResult[AuthSession]:
        async with self._store.anonymous() as session:
            taken = await session.scalar(
                select(func.count())
                .select_from(Profile)
                .where(func.lower(Profile.username) == username.lower())
            )
        if taken:
            raise ConflictError("Username is already taken")

        try:
            payload = await self._client.sign_up(
                email,
                password,
                metadata={"full_name": full_name, "username": username},
            )
        except AuthAPIError as e:
            raise _map_auth_error(e, "Registration rejected by the authentication service")

        # With auto-confirm the API returns a session wrapping the user
        user_payload = payload.get("user") or payload
        user = AuthUser.from_auth_payload(user_payload)
        logger.info("Registered user %s", user.id)
        return ServiceResult.ok(AuthSession(user=user, session=_session_tokens(payload)))

    @service_operation("login")
    async def login(self, email: str, password: str) -> ServiceResult[AuthSession]:
        try:
            payload = await self._client.sign_in_with_password(email, password)
        except AuthAPIError as e:
            raise _map_auth_error(e, "Invalid credentials")

        user = AuthUser.from_auth_payload(payload.get("user") or {})
        user.profile = await self._profile(user.id)
        logger.info("User %s logged in", user.id)
        return ServiceResult.ok(AuthSession(user=user, session=_session_tokens(payload)))

    @service_operation("refresh")
    async def refresh(self, refresh_token: str) -> ServiceResult[AuthSession]:
        try:
            payload = await self._client.refresh_session(refresh_token)
        except AuthAPIError as e:
            raise _map_auth_error(e, "Invalid refresh token")

        user = AuthUser.from_auth_payload(payload.get("user") or {})
        return ServiceResult.ok(AuthSession(user=user, session=_session_tokens(payload)))

    @service_operation("logout")
    async def logout(self, user: AuthenticatedUser) -> ServiceResult[None]:
        try:
            await self._client.sign_out(user.token)
        except AuthAPIError as e:
            # An already-revoked session is as good as a successful logout
            if e.status_code not in (401, 403, 404):
                raise _map_auth_error(e, "Invalid token")
        logger.info("User %s logged out", user.id)
        return ServiceResult.ok()

    @service_operation("current_user")
    async def current_user(self, user: AuthenticatedUser) -> ServiceResult[AuthUser]:
        try:
            payload = await self._client.get_user(user.token)
        except AuthAPIError as e:
            raise _map_auth_error(e, "Invalid token")

        current = AuthUser.from_auth_payload(payload)
        current.profile = await self._profile(current.id)
        if current.profile is not None:
            current.username = current.profile.username or current.username
            current.full_name = current.profile.full_name or current.full_name
        return ServiceResult.ok(current)

    async def _profile(self, user_id) -> Optional[ProfileResponse]:
        async with self._store.anonymous() as session:
            profile = await session.get(Profile, user_id)
        return ProfileResponse.model_validate(profile) if profile else None
