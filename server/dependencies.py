"""FastAPI Dependencies

Centralized dependency injection for reuse across all route modules.
Provides type-safe, testable access to shared resources.
"""

from typing import Optional

from fastapi import Depends, Request

from database.hub import Hub
from database.models import UserProfile
from exceptions import AuthenticationError, PermissionDeniedError
from userland.auth.jwt import ACCESS, REFRESH, is_initialized, token_subject


def get_hub(request: Request) -> Hub:
    """Dependency to get the shared hub instance from app state

    Usage in routes:
        @router.get("/endpoint")
        async def endpoint(hub: Hub = Depends(get_hub)):
            polls = await hub.polls.get_polls()
            return polls

    Benefits:
    - Type-safe store access (IDE autocomplete works)
    - Testable (tests build the app around a memory-backed hub)
    - Cleaner than manual request.app.state.hub access
    """
    return request.app.state.hub


async def get_current_user(request: Request) -> UserProfile:
    """
    Resolve the caller from a session token.

    Accepts either:
    - Access token in the Authorization header (preferred)
    - Refresh token from the httpOnly cookie (page loads before a refresh)

    Raises:
        AuthenticationError (401) if not authenticated, token invalid or user gone
    """
    if not is_initialized():
        raise AuthenticationError("Authentication is not configured")

    auth_header = request.headers.get("authorization", "")
    bearer = auth_header[len("Bearer "):] if auth_header.startswith("Bearer ") else None

    user_id = token_subject(bearer, ACCESS) or token_subject(
        request.cookies.get("refresh_token"), REFRESH
    )
    if not user_id:
        raise AuthenticationError("Not authenticated")

    hub: Hub = request.app.state.hub
    user = await hub.users.get_user(user_id)
    if not user:
        raise AuthenticationError("User no longer exists")

    return user


async def get_optional_user(request: Request) -> Optional[UserProfile]:
    """Optional user dependency - returns None if not authenticated."""
    try:
        return await get_current_user(request)
    except AuthenticationError:
        return None


async def get_admin_user(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    """Require the server-side admin role claim on the caller's profile."""
    if not user.is_admin:
        raise PermissionDeniedError("Admin access required", {"user_id": user.uid})
    return user
