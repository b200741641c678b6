"""
DevConnect Backend: Auth Route Handlers
=========================================

What:  /api/auth: registration, login, token refresh, logout and "who am I".
How:   Credentials go to the hosted auth API through AuthService; this
       backend never stores passwords or mints tokens.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from devconnect.dependencies import AuthenticatedUser, get_auth_service, require_user
from devconnect.responses import json_response, success_envelope
from devconnect.services.auth_service import AuthService
from devconnect.validation import validate_body

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", status_code=201, summary="Create an account")
async def register(
    body: Dict[str, Any] = Depends(validate_body("AuthRegister")),
    service: AuthService = Depends(get_auth_service),
):
    result = await service.register(
        full_name=body["full_name"],
        username=body["username"],
        email=body["email"],
        password=body["password"],
    )
    auth = result.unwrap()
    return json_response(
        success_envelope(auth, "User registered successfully"),
        status_code=201,
    )


@router.post("/login", summary="Sign in with e-mail and password")
async def login(
    body: Dict[str, Any] = Depends(validate_body("AuthLogin")),
    service: AuthService = Depends(get_auth_service),
):
    auth = (await service.login(body["email"], body["password"])).unwrap()
    return json_response(success_envelope(auth, "Login successful"))


@router.post("/refresh", summary="Exchange a refresh token for a new session")
async def refresh(
    body: Dict[str, Any] = Depends(validate_body("AuthRefresh")),
    service: AuthService = Depends(get_auth_service),
):
    auth = (await service.refresh(body["refresh_token"])).unwrap()
    return json_response(success_envelope(auth, "Token refreshed successfully"))


@router.post("/logout", summary="Revoke the current session")
async def logout(
    user: AuthenticatedUser = Depends(require_user),
    service: AuthService = Depends(get_auth_service),
):
    (await service.logout(user)).unwrap()
    return json_response(success_envelope(message="Logged out successfully"))


@router.get("/me", summary="The authenticated user and their profile")
async def me(
    user: AuthenticatedUser = Depends(require_user),
    service: AuthService = Depends(get_auth_service),
):
    current = (await service.current_user(user)).unwrap()
    return json_response(success_envelope({"user": current}, "User retrieved successfully"))
