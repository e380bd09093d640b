"""Question Storm API - questions, answers, answer reactions."""

from typing import Optional

from fastapi import APIRouter, Depends

from config import get_logger
from database.hub import Hub
from database.models import Answer, UserProfile
from server.dependencies import get_current_user, get_hub, get_optional_user
from server.metrics import metrics
from server.models.requests import AnswerRequest, ReactionRequest, TextRequest
from tally.adapters import ANSWER_REACTIONS
from tally.reactions import reaction_counts, user_reactions

logger = get_logger(__name__)

router = APIRouter(prefix="/api/questions", tags=["questions"])


def _answer_view(answer: Answer, user: Optional[UserProfile]) -> dict:
    doc = answer.to_doc()
    doc["reactionCounts"] = reaction_counts(doc, ANSWER_REACTIONS)
    doc["myReactions"] = user_reactions(doc, user.uid if user else None)
    return doc


@router.get("")
async def list_questions(hub: Hub = Depends(get_hub)):
    """All questions, newest first."""
    questions = await hub.questions.get_questions()
    return {"success": True, "questions": [q.to_doc() for q in questions]}


@router.post("")
async def create_question(
    body: TextRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    question = await hub.questions.create_question(user, body.text)
    metrics.content_created.labels(kind="question").inc()
    return {"success": True, "question": question.to_doc()}


@router.get("/{question_id}")
async def get_question(question_id: str, hub: Hub = Depends(get_hub)):
    question = await hub.questions.require_question(question_id)
    return {"success": True, "question": question.to_doc()}


@router.patch("/{question_id}")
async def edit_question(
    question_id: str,
    body: TextRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Edit question text (author only)."""
    question = await hub.questions.edit_question(user, question_id, body.text)
    return {"success": True, "question": question.to_doc()}


@router.delete("/{question_id}")
async def delete_question(
    question_id: str,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Delete a question and its answers (author or admin)."""
    await hub.questions.delete_question(user, question_id)
    metrics.content_deleted.labels(kind="question").inc()
    return {"success": True, "deleted": question_id}


# ========== Answers ==========


@router.get("/{question_id}/answers")
async def list_answers(
    question_id: str,
    user: Optional[UserProfile] = Depends(get_optional_user),
    hub: Hub = Depends(get_hub),
):
    """Answers of a question, newest first, with reaction counts."""
    await hub.questions.require_question(question_id)
    answers = await hub.questions.get_answers(question_id)
    return {"success": True, "answers": [_answer_view(a, user) for a in answers]}


@router.post("/{question_id}/answers")
async def create_answer(
    question_id: str,
    body: AnswerRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    answer = await hub.questions.create_answer(user, question_id, body.text, body.anonymous)
    metrics.content_created.labels(kind="answer").inc()
    return {"success": True, "answer": _answer_view(answer, user)}


@router.post("/answers/{answer_id}/reactions")
async def toggle_answer_reaction(
    answer_id: str,
    body: ReactionRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Toggle 🔥 ❤️ 😆 on an answer."""
    active = await hub.reactions.toggle_reaction(ANSWER_REACTIONS, answer_id, user.uid, body.tag)
    answer = await hub.questions.get_answer(answer_id)
    counts = reaction_counts(answer.to_doc() if answer else None, ANSWER_REACTIONS)
    return {"success": True, "active": active, "reactionCounts": counts}
