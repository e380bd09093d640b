"""Daily Idea Drop API - ideas, reactions, leaderboard."""

from typing import Optional

from fastapi import APIRouter, Depends

from config import get_logger
from database.hub import Hub
from database.models import Idea, UserProfile
from database.repositories_async.ideas import SORT_LATEST
from exceptions import NotFoundError
from server.dependencies import get_current_user, get_hub, get_optional_user
from server.metrics import metrics
from server.models.requests import ReactionRequest, TextRequest
from tally.adapters import IDEA_REACTIONS
from tally.reactions import reaction_counts, user_reactions

logger = get_logger(__name__)

router = APIRouter(prefix="/api/ideas", tags=["ideas"])


def _idea_view(idea: Idea, user: Optional[UserProfile]) -> dict:
    doc = idea.to_doc()
    doc["reactionCounts"] = reaction_counts(doc, IDEA_REACTIONS)
    doc["myReactions"] = user_reactions(doc, user.uid if user else None)
    return doc


@router.get("")
async def list_ideas(
    sort: str = SORT_LATEST,
    user: Optional[UserProfile] = Depends(get_optional_user),
    hub: Hub = Depends(get_hub),
):
    """Ideas sorted latest (newest first) or popular (most reactions first)."""
    ideas = await hub.ideas.get_ideas(sort)
    return {"success": True, "sort": sort, "ideas": [_idea_view(i, user) for i in ideas]}


@router.post("")
async def create_idea(
    body: TextRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Share today's idea (one per user per UTC day)."""
    idea = await hub.ideas.create_idea(user, body.text)
    metrics.content_created.labels(kind="idea").inc()
    return {"success": True, "idea": _idea_view(idea, user)}


@router.get("/random")
async def random_idea(
    user: Optional[UserProfile] = Depends(get_optional_user),
    hub: Hub = Depends(get_hub),
):
    idea = await hub.ideas.get_random_idea()
    if idea is None:
        raise NotFoundError("No ideas yet", kind="idea")
    return {"success": True, "idea": _idea_view(idea, user)}


@router.get("/leaderboard")
async def leaderboard(hub: Hub = Depends(get_hub)):
    """Top 5 authors by lifetime reactions."""
    entries = await hub.ideas.get_leaderboard()
    return {"success": True, "leaderboard": [entry.to_dict() for entry in entries]}


@router.get("/today")
async def submitted_today(
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Whether the caller already shared an idea today."""
    return {"success": True, "submitted": await hub.ideas.has_submitted_today(user.uid)}


@router.patch("/{idea_id}")
async def edit_idea(
    idea_id: str,
    body: TextRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    idea = await hub.ideas.edit_idea(user, idea_id, body.text)
    return {"success": True, "idea": _idea_view(idea, user)}


@router.delete("/{idea_id}")
async def delete_idea(
    idea_id: str,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    await hub.ideas.delete_idea(user, idea_id)
    metrics.content_deleted.labels(kind="idea").inc()
    return {"success": True, "deleted": idea_id}


@router.post("/{idea_id}/reactions")
async def toggle_idea_reaction(
    idea_id: str,
    body: ReactionRequest,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Toggle 🔥 or 💭 on an idea."""
    active = await hub.reactions.toggle_reaction(IDEA_REACTIONS, idea_id, user.uid, body.tag)
    idea = await hub.ideas.get_idea(idea_id)
    counts = reaction_counts(idea.to_doc() if idea else None, IDEA_REACTIONS)
    return {"success": True, "active": active, "reactionCounts": counts}
