"""Input validation and normalization shared by repositories and routes."""

import re
from typing import Optional

from exceptions import ValidationError

MAX_QUESTION_LENGTH = 500
MAX_ANSWER_LENGTH = 1000
MAX_DISPLAY_NAME_LENGTH = 50
MAX_URL_LENGTH = 2000

_URL_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)

# watch?v=, youtu.be/, embed/, shorts/, v/ forms; the id is always 11 chars
_YOUTUBE_PATTERN = re.compile(
    r"(?:youtube\.com/(?:watch\?(?:.*&)?v=|embed/|shorts/|v/)|youtu\.be/)([A-Za-z0-9_-]{11})"
)


def clean_text(value: Optional[str], field: str, max_length: int) -> str:
    """Trim text and enforce 1..max_length characters.

    Raises:
        ValidationError: empty after trimming or too long
    """
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} cannot be empty", field=field)
    if len(text) > max_length:
        raise ValidationError(
            f"{field} too long (max {max_length} characters)",
            field=field,
            value=len(text),
        )
    return text


def clean_optional_url(value: Optional[str], field: str) -> Optional[str]:
    """Empty -> None; otherwise must be an http(s) URL."""
    url = (value or "").strip()
    if not url:
        return None
    if len(url) > MAX_URL_LENGTH:
        raise ValidationError(f"{field} too long", field=field)
    if not _URL_PATTERN.match(url):
        raise ValidationError(f"{field} must be a valid HTTP/HTTPS URL", field=field, value=url)
    return url


def extract_youtube_id(url: Optional[str]) -> Optional[str]:
    """11-character video id from a YouTube URL, or None.

    Examples:
        >>> extract_youtube_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        'dQw4w9WgXcQ'
        >>> extract_youtube_id("https://youtu.be/dQw4w9WgXcQ?t=3")
        'dQw4w9WgXcQ'
        >>> extract_youtube_id("https://example.com") is None
        True
    """
    if not url:
        return None
    match = _YOUTUBE_PATTERN.search(url)
    return match.group(1) if match else None


def validate_email(value: Optional[str]) -> str:
    """Normalize (trim, lowercase) and loosely check an email address."""
    email = (value or "").strip().lower()
    if not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", email):
        raise ValidationError("Invalid email address", field="email")
    return email
