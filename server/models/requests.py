"""
Pydantic request models for API validation

Shape checks only; content rules (length limits, option counts) live in the
repositories so every caller gets the same errors.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class RegisterRequest(BaseModel):
    email: str
    password: str
    display_name: Optional[str] = Field(default=None, alias="displayName")

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    email: str
    password: str


class DisplayNameRequest(BaseModel):
    display_name: str = Field(alias="displayName")

    model_config = {"populate_by_name": True}


class TextRequest(BaseModel):
    """Question, idea and comment bodies"""
    text: str


class AnswerRequest(BaseModel):
    text: str
    anonymous: bool = False


class PollCreateRequest(BaseModel):
    question: str
    options: List[str]
    gif_url: Optional[str] = Field(default=None, alias="gifUrl")

    model_config = {"populate_by_name": True}

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: List[str]) -> List[str]:
        if not isinstance(v, list):
            raise ValueError("Options must be a list")
        return [option if isinstance(option, str) else str(option) for option in v]


class PollEditRequest(BaseModel):
    question: Optional[str] = None
    options: Optional[Dict[str, str]] = None


class VoteRequest(BaseModel):
    option_id: str = Field(alias="optionId")

    model_config = {"populate_by_name": True}


class ReactionRequest(BaseModel):
    """Emoji or alias (fire, thought, heart, laugh)"""
    tag: str


class WyrCreateRequest(BaseModel):
    option_a: str = Field(alias="optionA")
    option_b: str = Field(alias="optionB")

    model_config = {"populate_by_name": True}


class WyrEditRequest(BaseModel):
    option_a: Optional[str] = Field(default=None, alias="optionA")
    option_b: Optional[str] = Field(default=None, alias="optionB")

    model_config = {"populate_by_name": True}


class WyrVoteRequest(BaseModel):
    choice: str

    @field_validator("choice")
    @classmethod
    def validate_choice(cls, v: str) -> str:
        choice = (v or "").strip().upper()
        if choice not in ("A", "B"):
            raise ValueError("Choice must be 'A' or 'B'")
        return choice


class PostCreateRequest(BaseModel):
    title: str
    content: str
    youtube_url: Optional[str] = Field(default=None, alias="youtubeUrl")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    featured: bool = False

    model_config = {"populate_by_name": True}


class SubscriberCountRequest(BaseModel):
    count: int
