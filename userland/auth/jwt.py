"""
Session tokens

Two HS256 tokens per session, both carrying the user id in `sub`:
- access: one hour, sent by clients as `Authorization: Bearer`
- refresh: thirty days, kept in an httpOnly cookie and exchanged for a
  fresh pair at /api/auth/refresh

The signing secret is module state set once by init_jwt() at startup.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

ACCESS = "access"
REFRESH = "refresh"

_ALGORITHM = "HS256"
_LIFETIMES = {
    ACCESS: timedelta(hours=1),
    REFRESH: timedelta(days=30),
}

_secret: Optional[str] = None


def init_jwt(secret: str) -> None:
    """Set the signing secret.

    Repeating the call with the same secret does nothing, so several apps can
    be built in one process.

    Raises:
        ValueError: empty secret, or a different secret is already set
    """
    global _secret

    if not secret or not secret.strip():
        raise ValueError("JWT secret cannot be empty")
    if _secret is not None and _secret != secret:
        raise ValueError("JWT secret already set to a different value")
    _secret = secret


def is_initialized() -> bool:
    return _secret is not None


def _signing_key() -> str:
    if _secret is None:
        raise ValueError("JWT module not initialized. Call init_jwt() first.")
    return _secret


def _issue(user_id: str, kind: str) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "type": kind,
        "iat": issued,
        "exp": issued + _LIFETIMES[kind],
    }
    return jwt.encode(claims, _signing_key(), algorithm=_ALGORITHM)


def generate_access_token(user_id: str) -> str:
    return _issue(user_id, ACCESS)


def generate_refresh_token(user_id: str) -> str:
    return _issue(user_id, REFRESH)


def refresh_token_max_age() -> int:
    """Refresh cookie lifetime in seconds"""
    return int(_LIFETIMES[REFRESH].total_seconds())


def verify_token(token: str, expected_type: Optional[str] = None) -> Optional[dict]:
    """Claims of a valid, unexpired token of the expected type, else None"""
    try:
        claims = jwt.decode(token, _signing_key(), algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if expected_type and claims.get("type") != expected_type:
        return None
    return claims


def token_subject(token: Optional[str], expected_type: str) -> Optional[str]:
    """User id carried by a token, None when the token is missing or bad"""
    if not token:
        return None
    claims = verify_token(token, expected_type)
    return claims.get("sub") if claims else None
