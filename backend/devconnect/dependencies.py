"""
DevConnect Backend: Request Dependencies
==========================================

What:  FastAPI dependencies for authentication and service wiring.
How:   `require_user` verifies the bearer token locally (HS256, shared Supabase
       JWT secret, audience "authenticated") and yields an AuthenticatedUser.
       Service providers build a service around the process-wide Store, so
       tests only need to override `get_store` / `get_auth_client`.
Who:   Route handlers, e.g. `user: AuthenticatedUser = Depends(require_user)`.

Ordering: in every protected route `require_user` is declared before the
body-validation dependency, so an unauthenticated request is answered with
401 even when its body is also invalid.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from devconnect.config import settings
from devconnect.database import Store, default_store
from devconnect.exceptions import AuthenticationError, translate_error

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    """The caller behind a verified access token."""
    id: uuid.UUID
    email: Optional[str]
    token: str
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.claims.get("user_metadata") or {}


def decode_access_token(token: str) -> AuthenticatedUser:
    """
    Verify signature, expiry and audience, then build the user.

    Raises AuthenticationError for every kind of bad token.
    """
    if not settings.supabase_jwt_secret:
        logger.error("SUPABASE_JWT_SECRET is not configured; rejecting bearer token")
        raise AuthenticationError("Invalid token")

    try:
        claims = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
        )
    except jwt.InvalidTokenError as e:
        raise translate_error(e)

    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError:
        raise AuthenticationError("Invalid token")

    return AuthenticatedUser(id=user_id, email=claims.get("email"), token=token, claims=claims)


async def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication token required")
    return decode_access_token(credentials.credentials)


async def optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthenticatedUser]:
    """Public routes: a valid token personalizes the response, a bad one is ignored."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except AuthenticationError:
        return None


# ── Service Wiring ────────────────────────────────────────────────────────

def get_store() -> Store:
    return default_store


def get_auth_client():
    from devconnect.services.auth_client import auth_client

    return auth_client


def get_project_service(store: Store = Depends(get_store)):
    from devconnect.services.project_service import ProjectService

    return ProjectService(store)


def get_comment_service(store: Store = Depends(get_store)):
    from devconnect.services.comment_service import CommentService

    return CommentService(store)


def get_profile_service(store: Store = Depends(get_store)):
    from devconnect.services.profile_service import ProfileService

    return ProfileService(store)


def get_auth_service(
    store: Store = Depends(get_store),
    client=Depends(get_auth_client),
):
    from devconnect.services.auth_service import AuthService

    return AuthService(store, client)
