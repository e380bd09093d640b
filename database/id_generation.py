"""
ID Generation - Identifiers for hub documents

Single source of truth for ALL ID generation. Routes never build keys by hand.

Entity ID Patterns:
- Document ID: {12-char base36 millis}{8-char random} - e.g., "01lq3kz9x8a2f4b7c1d9e"
- Choice record ID: {subject_id}_{user_id} - e.g., "01lq3kz9x8a2f4b7_u123"
- Credential key: {64-char sha256 of lowercased email}

Design Philosophy:
- Document IDs sort by creation time (lexicographic order == creation order)
- Choice record IDs are deterministic: one record per (subject, user)
- Credential keys never expose the email inside a key path
"""

import hashlib
import re
import secrets
import time
from typing import Optional

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_TIME_WIDTH = 12
_RANDOM_WIDTH = 8

_DOCUMENT_ID_PATTERN = re.compile(r"^[0-9a-z]{20}$")


def _base36(value: int, width: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits)).rjust(width, "0")


def generate_document_id(now_ms: Optional[int] = None) -> str:
    """Generate a time-ordered random document ID

    Args:
        now_ms: Creation time in epoch milliseconds (defaults to now)

    Returns:
        20-character ID, e.g. "000lq3kz9x8a2f4b7c1d"

    Examples:
        >>> len(generate_document_id())
        20
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_RANDOM_WIDTH))
    return _base36(now_ms, _TIME_WIDTH) + suffix


def validate_document_id(document_id: str) -> bool:
    """Check document ID format (20 lowercase base36 characters)"""
    if not document_id or not isinstance(document_id, str):
        return False
    return bool(_DOCUMENT_ID_PATTERN.match(document_id))


def generate_choice_record_id(subject_id: str, user_id: str) -> str:
    """Deterministic Choice Record key for one (subject, user) pair

    Examples:
        >>> generate_choice_record_id("poll1", "alice")
        'poll1_alice'
    """
    if not subject_id or not user_id:
        raise ValueError("subject_id and user_id are required")
    return f"{subject_id}_{user_id}"


def generate_credential_key(email: str) -> str:
    """Credential document key: sha256 of the normalized email"""
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValueError("email is required")
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
