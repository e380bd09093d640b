"""Would You Rather API - binary questions, votes, comments."""

from typing import Optional

from fastapi import APIRouter, Depends

from config import get_logger
from database.hub import Hub
from database.models import UserProfile, WouldYouRather
from database.repositories_async.polls import percentage
from database.repositories_async.wyr import hide_results
from server.dependencies import get_current_user, get_hub, get_optional_user
from server.metrics import metrics
from server.models.requests import TextRequest, WyrCreateRequest, WyrEditRequest, WyrVoteRequest
from tally.adapters import WOULD_YOU_RATHER

logger = get_logger(__name__)

router = APIRouter(prefix="/api/wyr", tags=["wyr"])


def _question_view(question: WouldYouRather, show_results: bool = True) -> dict:
    """Question document with its split; counts are withheld until the caller votes"""
    doc = question.to_doc()
    if not show_results:
        return hide_results(doc)
    doc["resultsHidden"] = False
    total = question.votes_a + question.votes_b
    doc["totalVotes"] = total
    doc["percentA"] = percentage(question.votes_a, total)
    doc["percentB"] = percentage(question.votes_b, total)
    return doc


def _can_see_results(question: WouldYouRather, user: Optional[UserProfile], voted: bool) -> bool:
    return voted or (user is not None and user.uid == question.author_id)


@router.get("")
async def list_questions(
    user: Optional[UserProfile] = Depends(get_optional_user),
    hub: Hub = Depends(get_hub),
):
    questions = await hub.wyr.get_questions()
    voted = await hub.wyr.get_user_votes(user.uid) if user else {}
    return {
        "success": True,
        "questions": [_question_view(q, _can_see_results(q, user, q.id in voted)) for q in questions],
    }


@router.post("")
async def create_question(
    body: WyrCreateRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    question = await hub.wyr.create_question(user, body.option_a, body.option_b)
    metrics.content_created.labels(kind="wyr").inc()
    return {"success": True, "question": _question_view(question)}


@router.get("/my-votes")
async def my_votes(
    user: Optional[UserProfile] = Depends(get_optional_user),
    hub: Hub = Depends(get_hub),
):
    """{questionId: "A" | "B"} for the caller; empty when signed out."""
    votes = await hub.wyr.get_user_votes(user.uid) if user else {}
    return {"success": True, "votes": votes}


@router.get("/{question_id}")
async def get_question(
    question_id: str,
    user: Optional[UserProfile] = Depends(get_optional_user),
    hub: Hub = Depends(get_hub),
):
    question = await hub.wyr.require_question(question_id)
    voted = bool(user) and await hub.wyr.get_vote(question_id, user.uid) is not None
    return {"success": True, "question": _question_view(question, _can_see_results(question, user, voted))}


@router.patch("/{question_id}")
async def edit_question(
    question_id: str,
    body: WyrEditRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    question = await hub.wyr.edit_question(user, question_id, body.option_a, body.option_b)
    return {"success": True, "question": _question_view(question)}


@router.delete("/{question_id}")
async def delete_question(
    question_id: str,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Delete a question with its votes and comments (author or admin)."""
    await hub.wyr.delete_question(user, question_id)
    metrics.content_deleted.labels(kind="wyr").inc()
    return {"success": True, "deleted": question_id}


@router.post("/{question_id}/vote")
async def vote(
    question_id: str,
    body: WyrVoteRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    tally = await hub.tally.apply_choice(WOULD_YOU_RATHER, question_id, user.uid, body.choice)
    return {"success": True, "tally": tally.to_dict()}


# ========== Comments ==========


@router.get("/{question_id}/comments")
async def list_comments(question_id: str, hub: Hub = Depends(get_hub)):
    """Comments, oldest first."""
    await hub.wyr.require_question(question_id)
    comments = await hub.wyr.get_comments(question_id)
    return {"success": True, "comments": [c.to_doc() for c in comments]}


@router.post("/{question_id}/comments")
async def add_comment(
    question_id: str,
    body: TextRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Comment on a question you voted on."""
    comment = await hub.wyr.add_comment(user, question_id, body.text)
    metrics.content_created.labels(kind="comment").inc()
    return {"success": True, "comment": comment.to_doc()}
