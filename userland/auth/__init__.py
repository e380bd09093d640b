"""Accounts: password hashing and session tokens"""

from userland.auth.jwt import (
    ACCESS,
    REFRESH,
    generate_access_token,
    generate_refresh_token,
    init_jwt,
    is_initialized,
    refresh_token_max_age,
    token_subject,
    verify_token,
)
from userland.auth.passwords import check_password_strength, hash_password, verify_password

__all__ = [
    "ACCESS",
    "REFRESH",
    "generate_access_token",
    "generate_refresh_token",
    "init_jwt",
    "is_initialized",
    "refresh_token_max_age",
    "token_subject",
    "verify_token",
    "check_password_strength",
    "hash_password",
    "verify_password",
]
