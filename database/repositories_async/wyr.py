"""Would-you-rather repository.

Questions live at wyr_questions/{id}, vote records at
wyr_votes/{questionId}_{userId} and comments at
wyr_comments/{questionId}/{commentId}, one record per comment.
"""

from typing import Any, Dict, List, Optional

from config import get_logger
from database.id_generation import generate_choice_record_id, generate_document_id
from database.models import UserProfile, WouldYouRather, WyrComment, WyrVote, now_ms
from database.repositories_async.base import BaseRepository
from exceptions import ConflictError
from server.utils.validation import MAX_ANSWER_LENGTH, MAX_QUESTION_LENGTH, clean_text

logger = get_logger(__name__).bind(component="wyr_repository")

MAX_WYR_OPTION_LENGTH = 200

# The split, withheld from callers who have not voted yet
RESULT_FIELDS = ("votesA", "votesB", "totalVotes", "percentA", "percentB")


def hide_results(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a question document without its split"""
    hidden = {key: value for key, value in doc.items() if key not in RESULT_FIELDS}
    hidden["resultsHidden"] = True
    return hidden


class WouldYouRatherRepository(BaseRepository):
    """Repository for would-you-rather questions, votes and comments."""

    async def get_question(self, question_id: str) -> Optional[WouldYouRather]:
        return await self._get(WouldYouRather, f"wyr_questions/{question_id}")

    async def require_question(self, question_id: str) -> WouldYouRather:
        return self._require(await self.get_question(question_id), "question", question_id)

    async def get_questions(self) -> List[WouldYouRather]:
        return await self._list(WouldYouRather, "wyr_questions")

    async def create_question(self, user: UserProfile, option_a: str, option_b: str) -> WouldYouRather:
        question = WouldYouRather(
            id=generate_document_id(),
            option_a=clean_text(option_a, "Option A", MAX_WYR_OPTION_LENGTH),
            option_b=clean_text(option_b, "Option B", MAX_WYR_OPTION_LENGTH),
            **self._display_author(user),
        )
        await self.store.set(f"wyr_questions/{question.id}", question.to_doc())
        logger.info("wyr question created", question_id=question.id, author_id=user.uid)
        return question

    async def edit_question(
        self,
        user: UserProfile,
        question_id: str,
        option_a: Optional[str] = None,
        option_b: Optional[str] = None,
    ) -> WouldYouRather:
        question = await self.require_question(question_id)
        self._ensure_author(question, user, "question")

        fields = {}
        if option_a is not None:
            fields["optionA"] = clean_text(option_a, "Option A", MAX_WYR_OPTION_LENGTH)
        if option_b is not None:
            fields["optionB"] = clean_text(option_b, "Option B", MAX_WYR_OPTION_LENGTH)
        if not fields:
            return question

        fields["updatedAt"] = now_ms()
        await self.store.update(f"wyr_questions/{question_id}", fields)
        return await self.require_question(question_id)

    async def delete_question(self, user: UserProfile, question_id: str) -> bool:
        """Delete a question with its votes and comments (author or admin)."""
        question = await self.require_question(question_id)
        self._ensure_author_or_admin(question, user, "question")

        await self.store.remove(f"wyr_questions/{question_id}")
        removed_votes = await self._remove_matching("wyr_votes", "questionId", question_id)
        await self.store.remove(f"wyr_comments/{question_id}")
        logger.info(
            "wyr question deleted",
            question_id=question_id,
            user_id=user.uid,
            votes_removed=removed_votes,
        )
        return True

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    async def get_vote(self, question_id: str, user_id: str) -> Optional[WyrVote]:
        return await self._get(
            WyrVote, f"wyr_votes/{generate_choice_record_id(question_id, user_id)}"
        )

    async def get_user_votes(self, user_id: str) -> Dict[str, str]:
        """{questionId: "A" | "B"} for every question user_id voted on."""
        raw = await self.store.get("wyr_votes")
        if not isinstance(raw, dict):
            return {}
        votes = {}
        for body in raw.values():
            if isinstance(body, dict) and body.get("userId") == user_id:
                vote = WyrVote.model_validate(body)
                votes[vote.question_id] = vote.choice
        return votes

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def get_comments(self, question_id: str) -> List[WyrComment]:
        """Comments on one question, oldest first."""
        return await self._list(WyrComment, f"wyr_comments/{question_id}", oldest_first=True)

    async def add_comment(self, user: UserProfile, question_id: str, text: str) -> WyrComment:
        """Comment on a question; only voters may comment.

        Raises:
            NotFoundError: question missing
            ConflictError: user has not voted on the question
        """
        await self.require_question(question_id)
        vote = await self.get_vote(question_id, user.uid)
        if vote is None:
            raise ConflictError(
                "Vote before commenting",
                {"question_id": question_id, "user_id": user.uid},
            )

        comment = WyrComment(
            id=generate_document_id(),
            question_id=question_id,
            text=clean_text(text, "Comment", MAX_ANSWER_LENGTH),
            choice=vote.choice,
            **self._display_author(user),
        )
        await self.store.set(f"wyr_comments/{question_id}/{comment.id}", comment.to_doc())
        logger.info("wyr comment added", question_id=question_id, comment_id=comment.id)
        return comment
