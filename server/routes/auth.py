"""
Authentication Endpoints

Email/password accounts, JWT session management.
"""

from fastapi import APIRouter, Depends, Request, Response

from config import config, get_logger
from database.hub import Hub
from database.models import UserProfile
from exceptions import AuthenticationError, HubError
from server.dependencies import get_current_user, get_hub
from server.metrics import metrics
from server.models.requests import DisplayNameRequest, LoginRequest, RegisterRequest
from userland.auth.jwt import (
    REFRESH,
    generate_access_token,
    generate_refresh_token,
    refresh_token_max_age,
    token_subject,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _start_session(response: Response, user: UserProfile) -> dict:
    """Issue access token in the body and refresh token as httpOnly cookie."""
    response.set_cookie(
        key="refresh_token",
        value=generate_refresh_token(user.uid),
        path="/",
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite=config.COOKIE_SAMESITE,
        max_age=refresh_token_max_age(),
    )
    return {
        "success": True,
        "access_token": generate_access_token(user.uid),
        "token_type": "bearer",
        "user": user.public(),
    }


@router.post("/register")
async def register(
    register_request: RegisterRequest,
    response: Response,
    hub: Hub = Depends(get_hub),
):
    """Create an account and start a session."""
    try:
        user = await hub.users.register(
            register_request.email,
            register_request.password,
            register_request.display_name,
        )
    except HubError:
        metrics.auth_events.labels(event="register", status="rejected").inc()
        raise

    metrics.auth_events.labels(event="register", status="success").inc()
    return _start_session(response, user)


@router.post("/login")
async def login(
    login_request: LoginRequest,
    response: Response,
    hub: Hub = Depends(get_hub),
):
    """Check email and password, start a session."""
    try:
        user = await hub.users.authenticate(login_request.email, login_request.password)
    except AuthenticationError:
        metrics.auth_events.labels(event="login", status="rejected").inc()
        raise

    metrics.auth_events.labels(event="login", status="success").inc()
    logger.info("user logged in", user_id=user.uid)
    return _start_session(response, user)


@router.post("/refresh")
async def refresh_access_token(
    request: Request,
    response: Response,
    hub: Hub = Depends(get_hub),
):
    """New access token from the refresh cookie. Rotates the cookie."""
    user_id = token_subject(request.cookies.get("refresh_token"), REFRESH)
    if not user_id:
        raise AuthenticationError("No valid refresh token")

    user = await hub.users.get_user(user_id)
    if not user:
        raise AuthenticationError("User no longer exists")

    return _start_session(response, user)


@router.post("/logout")
async def logout(response: Response):
    """Clear the refresh cookie."""
    response.delete_cookie("refresh_token", path="/")
    return {"success": True, "status": "logged_out"}


@router.get("/me")
async def get_current_user_endpoint(user: UserProfile = Depends(get_current_user)):
    """Get current user profile."""
    return {"success": True, "user": user.public()}


@router.patch("/me")
async def update_display_name(
    body: DisplayNameRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Change the caller's display name."""
    updated = await hub.users.update_display_name(user, body.display_name)
    return {"success": True, "user": updated.public()}
