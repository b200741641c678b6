"""
DevConnect Backend: Service Result & Shared Projections
=========================================================

What:  `ServiceResult`, the value every resource-service method returns, and
       the author projection shared by projects and comments.
Why:   Services never raise across their boundary. A fault is translated once
       into a typed ApiError and carried in the result; the route decides
       what to do with it by calling `unwrap()`.

Usage:
    result = await project_service.get_project(project_id)
    project = result.unwrap()          # raises NotFoundError on a miss
"""

import functools
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from devconnect.exceptions import ApiError, translate_error
from devconnect.models import Profile
from devconnect.schemas.common import AuthorSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_USERNAME = "Usuario"


@dataclass
class ServiceResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[ApiError] = None
    total: Optional[int] = None
    has_more: Optional[bool] = None

    @classmethod
    def ok(
        cls,
        data: Optional[T] = None,
        total: Optional[int] = None,
        has_more: Optional[bool] = None,
    ) -> "ServiceResult[T]":
        return cls(success=True, data=data, total=total, has_more=has_more)

    @classmethod
    def fail(cls, exc: BaseException) -> "ServiceResult[T]":
        return cls(success=False, error=translate_error(exc))

    def unwrap(self) -> T:
        if not self.success:
            raise self.error or ApiError()
        return self.data


def service_operation(name: str):
    """
    Wrap an async service method so any fault becomes a failed ServiceResult.

    ApiErrors raised on purpose (NotFoundError, AuthorizationError) pass
    through translate_error unchanged. Anything else is logged with its
    traceback here, since the HTTP layer only sees the translated kind.
    """

    def decorator(func: Callable[..., Awaitable["ServiceResult[Any]"]]):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> "ServiceResult[Any]":
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if isinstance(e, ApiError):
                    logger.debug("%s failed: %r", name, e)
                else:
                    logger.error("%s failed: %s", name, type(e).__name__, exc_info=True)
                return ServiceResult.fail(e)

        return wrapper

    return decorator


# ══════════════════════════════════════════════════════════════════════════
# Author Projection
# ══════════════════════════════════════════════════════════════════════════

def display_username(profile: Optional[Profile]) -> str:
    """
    Never-empty handle for an author.

    Order: profile.username, then the first word of full_name (skipped when
    it looks like an e-mail address), then FALLBACK_USERNAME.
    """
    if profile is None:
        return FALLBACK_USERNAME
    if profile.username and profile.username.strip():
        return profile.username.strip()
    if profile.full_name and "@" not in profile.full_name:
        words = profile.full_name.split()
        if words:
            return words[0]
    return FALLBACK_USERNAME


def author_summary(author_id: uuid.UUID, profile: Optional[Profile]) -> AuthorSummary:
    return AuthorSummary(
        id=author_id,
        username=display_username(profile),
        avatar_url=profile.avatar_url if profile else None,
        full_name=profile.full_name if profile else None,
    )


def like_pattern(term: str) -> str:
    """ILIKE pattern for a substring search, with wildcards in `term` escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
