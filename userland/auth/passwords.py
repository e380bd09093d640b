"""
Password hashing (bcrypt)

bcrypt only looks at the first 72 bytes of a password; longer passwords
are rejected up front so two different passwords never hash the same.
"""

import bcrypt

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72


def check_password_strength(password: str) -> None:
    """Raise ValueError when password is unusable."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check password against a stored bcrypt hash"""
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
