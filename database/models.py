"""
Document Models for the hub

Pydantic models for every document kept in the store. Fields are snake_case
in Python and camelCase on the wire (the stored JSON), so documents written
by the store stay readable by any client.

    poll = Poll.from_doc(await store.get(f"polls/{poll_id}"))
    await store.set(f"polls/{poll.id}", poll.to_doc())
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current time in epoch milliseconds (document timestamps)"""
    return int(time.time() * 1000)


def utc_date(timestamp_ms: Optional[int] = None) -> str:
    """UTC calendar date (YYYY-MM-DD) for a timestamp, default now"""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


class Document(BaseModel):
    """Base for stored documents: camelCase aliases, unknown keys ignored"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @classmethod
    def from_doc(cls, data: Optional[Dict[str, Any]]):
        """Build from a stored snapshot; None when the document is missing"""
        if data is None:
            return None
        return cls.model_validate(data)

    def to_doc(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# Reactions are {tag: {user_id: True}}; count is the inner map's size
Reactions = Dict[str, Dict[str, bool]]


# --- Identity ---


class UserProfile(Document):
    uid: str
    email: str
    display_name: str
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    created_at: int = Field(default_factory=now_ms)
    streak_count: int = 0
    last_active_date: Optional[str] = None
    is_admin: bool = False

    def public(self) -> Dict[str, Any]:
        """Profile as returned by the API"""
        return self.to_doc()


class Credentials(Document):
    """Password hash, stored apart from the public profile"""
    uid: str
    password_hash: str


# --- Polls ---


class PollOption(Document):
    id: str
    text: str
    vote_count: int = 0


class Poll(Document):
    id: str
    question: str
    options: List[PollOption]
    vote_count: int = 0
    author_id: str
    author_name: str
    created_at: int = Field(default_factory=now_ms)
    gif_url: Optional[str] = None
    updated_at: Optional[int] = None


class PollVote(Document):
    """Choice Record for a poll"""
    poll_id: str
    option_id: str
    user_id: str
    created_at: int = Field(default_factory=now_ms)


# --- Would You Rather ---


class WouldYouRather(Document):
    id: str
    option_a: str
    option_b: str
    votes_a: int = 0
    votes_b: int = 0
    author_id: str
    author_name: str
    created_at: int = Field(default_factory=now_ms)
    updated_at: Optional[int] = None


class WyrVote(Document):
    """Choice Record for a would-you-rather question"""
    question_id: str
    choice: str
    user_id: str
    created_at: int = Field(default_factory=now_ms)


class WyrComment(Document):
    id: str
    question_id: str
    text: str
    author_id: str
    author_name: str
    created_at: int = Field(default_factory=now_ms)
    choice: Optional[str] = None


# --- Ideas ---


class Idea(Document):
    id: str
    text: str
    author_id: str
    author_name: str
    created_at: int = Field(default_factory=now_ms)
    date: str = Field(default_factory=utc_date)
    reactions: Reactions = Field(default_factory=dict)
    updated_at: Optional[int] = None


# --- Questions ---


class Question(Document):
    id: str
    text: str
    author_id: str
    author_name: str
    created_at: int = Field(default_factory=now_ms)
    answer_count: int = 0
    updated_at: Optional[int] = None


class Answer(Document):
    id: str
    question_id: str
    text: str
    author_id: str
    author_name: str
    anonymous: bool = False
    created_at: int = Field(default_factory=now_ms)
    reactions: Reactions = Field(default_factory=dict)


# --- Admin content ---


class AdminPost(Document):
    id: str
    title: str
    content: str
    youtube_url: Optional[str] = None
    image_url: Optional[str] = None
    author_id: str
    author_name: str
    created_at: int = Field(default_factory=now_ms)
    featured: bool = False


class SubscriberCount(Document):
    count: int = 0
    updated_at: Optional[int] = None
