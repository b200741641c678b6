"""
DevConnect Backend: Hosted Auth REST Client
=============================================

What:  Thin async client for the Supabase auth (GoTrue) REST API.
How:   One shared httpx.AsyncClient per process. Every request carries the
       project's anon key as `apikey`; user-scoped calls add the caller's
       bearer token. Transport failures (connect errors, timeouts) are
       retried by tenacity with exponential backoff and jitter; HTTP error
       statuses are not retried and surface as AuthAPIError.
Who:   AuthService (register / login / refresh / logout / me) and the
       health check.

Endpoints used (relative to {SUPABASE_URL}/auth/v1):
    POST /signup                        create account
    POST /token?grant_type=password     e-mail + password sign-in
    POST /token?grant_type=refresh_token
    POST /logout                        revoke the caller's session
    GET  /user                          user behind a token
    GET  /health
"""

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from devconnect.config import settings

logger = logging.getLogger(__name__)


class AuthAPIError(Exception):
    """The auth API answered with a non-2xx status."""

    def __init__(self, status_code: int, payload: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(f"auth API returned {status_code}: {self.message}")

    @property
    def message(self) -> str:
        for key in ("msg", "error_description", "message", "error"):
            value = self.payload.get(key)
            if isinstance(value, str) and value:
                return value
        return "unknown error"

    @property
    def error_code(self) -> Optional[str]:
        code = self.payload.get("error_code") or self.payload.get("error")
        return str(code) if code else None


def backoff(min_wait: float, max_wait: float) -> wait_random_exponential:
    """Full-jitter exponential backoff: attempt n sleeps uniform(0, min(min_wait * 2**(n-1), max_wait))."""
    return wait_random_exponential(multiplier=min_wait, max=max_wait)


_retry_transport = retry(
    retry=retry_if_exception_type(httpx.TransportError),
    stop=stop_after_attempt(settings.retry_max_attempts),
    wait=backoff(settings.retry_min_wait, settings.retry_max_wait),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


class SupabaseAuthClient:

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.auth_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.supabase_anon_key
        self.timeout = timeout or settings.auth_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"apikey": self.api_key, "Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── Operations ────────────────────────────────────────────────────────

    async def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": metadata},
        )

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    async def refresh_session(self, refresh_token: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", token=access_token)

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        return await self._request("GET", "/user", token=access_token)

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/health")
        except (httpx.HTTPError, AuthAPIError) as e:
            logger.warning("Auth API health check failed: %s", e)
            return False
        return True

    # ── Transport ─────────────────────────────────────────────────────────

    @_retry_transport
    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        response = await self.client.request(method, path, headers=headers, **kwargs)

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text[:200]}
            logger.info("Auth API %s %s -> %d", method, path, response.status_code)
            raise AuthAPIError(response.status_code, payload if isinstance(payload, dict) else {})

        if not response.content:
            return {}
        return response.json()


auth_client = SupabaseAuthClient()
