"""Account API - the caller's own content."""

from fastapi import APIRouter, Depends

from database.hub import Hub
from database.models import UserProfile
from server.dependencies import get_current_user, get_hub
from server.metrics import metrics

router = APIRouter(prefix="/api/account", tags=["account"])


@router.get("/content")
async def my_content(
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Questions, polls, ideas and WYR questions the caller wrote."""
    content = await hub.get_user_content(user)
    return {"success": True, **content}


@router.delete("/content/{content_type}/{item_id}")
async def delete_my_content(
    content_type: str,
    item_id: str,
    user: UserProfile = Depends(get_current_user),
    hub: Hub = Depends(get_hub),
):
    """Delete one item: content_type is question, poll, idea or wyr."""
    await hub.delete_content(user, content_type, item_id)
    metrics.content_deleted.labels(kind=content_type).inc()
    return {"success": True, "deleted": item_id, "type": content_type}
