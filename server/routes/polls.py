"""Poll War API - polls, votes, results."""

from typing import Optional

from fastapi import APIRouter, Depends

from config import get_logger
from database.hub import Hub
from database.models import Poll, UserProfile
from database.repositories_async.polls import poll_results
from server.dependencies import get_current_user, get_hub, get_optional_user
from server.metrics import metrics
from server.models.requests import PollCreateRequest, PollEditRequest, VoteRequest
from tally.adapters import POLLS

logger = get_logger(__name__)

router = APIRouter(prefix="/api/polls", tags=["polls"])


def _poll_view(poll: Poll) -> dict:
    doc = poll.to_doc()
    doc["results"] = [result.to_dict() for result in poll_results(poll)]
    return doc


@router.get("")
async def list_polls(hub: Hub = Depends(get_hub)):
    """All polls, newest first, with per-option percentages."""
    polls = await hub.polls.get_polls()
    return {"success": True, "polls": [_poll_view(p) for p in polls]}


@router.post("")
async def create_poll(
    body: PollCreateRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    poll = await hub.polls.create_poll(user, body.question, body.options, body.gif_url)
    metrics.content_created.labels(kind="poll").inc()
    return {"success": True, "poll": _poll_view(poll)}


@router.get("/my-votes")
async def my_votes(
    user: Optional[UserProfile] = Depends(get_optional_user),
    hub: Hub = Depends(get_hub),
):
    """{pollId: optionId} for the caller; empty when signed out."""
    votes = await hub.polls.get_user_votes(user.uid) if user else {}
    return {"success": True, "votes": votes}


@router.get("/{poll_id}")
async def get_poll(poll_id: str, hub: Hub = Depends(get_hub)):
    poll = await hub.polls.require_poll(poll_id)
    return {"success": True, "poll": _poll_view(poll)}


@router.patch("/{poll_id}")
async def edit_poll(
    poll_id: str,
    body: PollEditRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Edit question and option texts (author only). Option ids are kept."""
    poll = await hub.polls.edit_poll(user, poll_id, body.question, body.options)
    return {"success": True, "poll": _poll_view(poll)}


@router.delete("/{poll_id}")
async def delete_poll(
    poll_id: str,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Delete a poll and its votes (author or admin)."""
    await hub.polls.delete_poll(user, poll_id)
    metrics.content_deleted.labels(kind="poll").inc()
    return {"success": True, "deleted": poll_id}


@router.post("/{poll_id}/vote")
async def vote(
    poll_id: str,
    body: VoteRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Vote for an option; voting again for another option switches the vote."""
    tally = await hub.tally.apply_choice(POLLS, poll_id, user.uid, body.option_id)
    return {"success": True, "tally": tally.to_dict()}
