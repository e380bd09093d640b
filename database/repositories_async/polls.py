"""Poll repository - Poll War.

Polls live at polls/{id} with their options inline; vote records live at
votes/{pollId}_{userId}. Counters are only ever moved by the tally
maintainer; this repository creates, edits and deletes polls.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from config import config, get_logger
from database.id_generation import generate_document_id
from database.models import Poll, PollOption, PollVote, UserProfile, now_ms
from database.repositories_async.base import BaseRepository
from exceptions import ValidationError
from server.utils.validation import MAX_QUESTION_LENGTH, clean_optional_url, clean_text

logger = get_logger(__name__).bind(component="poll_repository")

MAX_OPTION_LENGTH = 200


@dataclass
class OptionResult:
    id: str
    text: str
    vote_count: int
    percentage: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "voteCount": self.vote_count,
            "percentage": self.percentage,
        }


def percentage(count: int, total: int) -> int:
    """round(count / total * 100), 0 when nobody voted"""
    if total <= 0:
        return 0
    return round(count / total * 100)


def poll_results(poll: Poll) -> List[OptionResult]:
    return [
        OptionResult(
            id=option.id,
            text=option.text,
            vote_count=option.vote_count,
            percentage=percentage(option.vote_count, poll.vote_count),
        )
        for option in poll.options
    ]


class PollRepository(BaseRepository):
    """Repository for polls and poll votes."""

    async def get_poll(self, poll_id: str) -> Optional[Poll]:
        return await self._get(Poll, f"polls/{poll_id}")

    async def require_poll(self, poll_id: str) -> Poll:
        return self._require(await self.get_poll(poll_id), "poll", poll_id)

    async def get_polls(self) -> List[Poll]:
        """All polls, newest first."""
        return await self._list(Poll, "polls")

    @staticmethod
    def _clean_options(options: List[str]) -> List[str]:
        """Drop blank options, then require 2..MAX_POLL_OPTIONS."""
        cleaned = [
            clean_text(option, "Option", MAX_OPTION_LENGTH)
            for option in options or []
            if option and option.strip()
        ]
        if len(cleaned) < 2:
            raise ValidationError("A poll needs at least two options", field="options")
        if len(cleaned) > config.MAX_POLL_OPTIONS:
            raise ValidationError(
                f"A poll can have at most {config.MAX_POLL_OPTIONS} options",
                field="options",
                value=len(cleaned),
            )
        return cleaned

    async def create_poll(
        self,
        user: UserProfile,
        question: str,
        options: List[str],
        gif_url: Optional[str] = None,
    ) -> Poll:
        poll = Poll(
            id=generate_document_id(),
            question=clean_text(question, "Question", MAX_QUESTION_LENGTH),
            options=[
                PollOption(id=str(index), text=text)
                for index, text in enumerate(self._clean_options(options))
            ],
            gif_url=clean_optional_url(gif_url, "GIF URL"),
            **self._display_author(user),
        )
        await self.store.set(f"polls/{poll.id}", poll.to_doc())
        logger.info(
            "poll created", poll_id=poll.id, author_id=user.uid, options=len(poll.options)
        )
        return poll

    async def edit_poll(
        self,
        user: UserProfile,
        poll_id: str,
        question: Optional[str] = None,
        option_texts: Optional[Dict[str, str]] = None,
    ) -> Poll:
        """Edit the question and/or option texts; option ids and counts stay."""
        poll = await self.require_poll(poll_id)
        self._ensure_author(poll, user, "poll")

        fields = {}
        if question is not None:
            fields["question"] = clean_text(question, "Question", MAX_QUESTION_LENGTH)

        for index, option in enumerate(poll.options):
            if option_texts and option.id in option_texts:
                fields[f"options/{index}/text"] = clean_text(
                    option_texts[option.id], "Option", MAX_OPTION_LENGTH
                )

        unknown = set(option_texts or {}) - {option.id for option in poll.options}
        if unknown:
            raise ValidationError("Unknown option id", field="options", value=sorted(unknown))

        if not fields:
            return poll

        fields["updatedAt"] = now_ms()
        await self.store.update(f"polls/{poll_id}", fields)
        logger.info("poll edited", poll_id=poll_id, fields=len(fields))
        return await self.require_poll(poll_id)

    async def delete_poll(self, user: UserProfile, poll_id: str) -> bool:
        """Delete a poll and its vote records (author or admin)."""
        poll = await self.require_poll(poll_id)
        self._ensure_author_or_admin(poll, user, "poll")

        await self.store.remove(f"polls/{poll_id}")
        removed_votes = await self._remove_matching("votes", "pollId", poll_id)
        logger.info("poll deleted", poll_id=poll_id, user_id=user.uid, votes_removed=removed_votes)
        return True

    async def get_user_votes(self, user_id: str) -> Dict[str, str]:
        """{pollId: optionId} for every poll user_id voted on."""
        raw = await self.store.get("votes")
        if not isinstance(raw, dict):
            return {}
        votes = {}
        for body in raw.values():
            if isinstance(body, dict) and body.get("userId") == user_id:
                vote = PollVote.model_validate(body)
                votes[vote.poll_id] = vote.option_id
        return votes
