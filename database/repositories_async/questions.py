"""Question repository - Question Storm threads.

Questions live at questions/{id}; answers are a flat collection
answers/{id} keyed back to their question by questionId. Every new answer
bumps the question's answerCount through the store's atomic increment.
"""

from typing import List, Optional

from config import get_logger
from database.id_generation import generate_document_id
from database.models import Answer, Question, UserProfile, now_ms
from database.repositories_async.base import BaseRepository
from exceptions import MissingDocumentError, NotFoundError
from server.utils.validation import MAX_ANSWER_LENGTH, MAX_QUESTION_LENGTH, clean_text

logger = get_logger(__name__).bind(component="question_repository")


class QuestionRepository(BaseRepository):
    """Repository for questions and answers."""

    async def get_question(self, question_id: str) -> Optional[Question]:
        return await self._get(Question, f"questions/{question_id}")

    async def require_question(self, question_id: str) -> Question:
        return self._require(await self.get_question(question_id), "question", question_id)

    async def get_questions(self) -> List[Question]:
        """All questions, newest first."""
        return await self._list(Question, "questions")

    async def create_question(self, user: UserProfile, text: str) -> Question:
        question = Question(
            id=generate_document_id(),
            text=clean_text(text, "Question", MAX_QUESTION_LENGTH),
            **self._display_author(user),
        )
        await self.store.set(f"questions/{question.id}", question.to_doc())
        logger.info("question created", question_id=question.id, author_id=user.uid)
        return question

    async def edit_question(self, user: UserProfile, question_id: str, text: str) -> Question:
        question = await self.require_question(question_id)
        self._ensure_author(question, user, "question")

        updated_at = now_ms()
        new_text = clean_text(text, "Question", MAX_QUESTION_LENGTH)
        await self.store.update(
            f"questions/{question_id}", {"text": new_text, "updatedAt": updated_at}
        )
        return question.model_copy(update={"text": new_text, "updated_at": updated_at})

    async def delete_question(self, user: UserProfile, question_id: str) -> bool:
        """Delete a question and its answers (author or admin)."""
        question = await self.require_question(question_id)
        self._ensure_author_or_admin(question, user, "question")

        await self.store.remove(f"questions/{question_id}")
        removed_answers = await self._remove_matching("answers", "questionId", question_id)
        logger.info(
            "question deleted",
            question_id=question_id,
            user_id=user.uid,
            answers_removed=removed_answers,
        )
        return True

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    async def get_answers(self, question_id: str) -> List[Answer]:
        """Answers of one question, newest first."""
        answers = await self._list(Answer, "answers")
        return [answer for answer in answers if answer.question_id == question_id]

    async def get_answer(self, answer_id: str) -> Optional[Answer]:
        return await self._get(Answer, f"answers/{answer_id}")

    async def create_answer(
        self,
        user: UserProfile,
        question_id: str,
        text: str,
        anonymous: bool = False,
    ) -> Answer:
        await self.require_question(question_id)

        answer = Answer(
            id=generate_document_id(),
            question_id=question_id,
            text=clean_text(text, "Answer", MAX_ANSWER_LENGTH),
            author_id=user.uid,
            author_name="Anonymous" if anonymous else (user.display_name or "Anonymous"),
            anonymous=anonymous,
        )
        await self.store.set(f"answers/{answer.id}", answer.to_doc())
        try:
            await self.store.increment(f"questions/{question_id}", {"answerCount": 1})
        except MissingDocumentError as e:
            # Question deleted after the check above
            await self.store.remove(f"answers/{answer.id}")
            raise NotFoundError("Question not found", kind="question", item_id=question_id) from e
        logger.info("answer created", question_id=question_id, answer_id=answer.id)
        return answer
