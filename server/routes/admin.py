"""
Admin API routes

Every route requires the admin role claim on the caller's profile
(granted at registration to emails in HUB_ADMIN_EMAILS).
"""

from fastapi import APIRouter, Depends

from config import get_logger
from database.hub import Hub
from database.models import UserProfile
from server.dependencies import get_admin_user, get_hub
from server.metrics import metrics
from server.models.requests import PostCreateRequest, SubscriberCountRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/posts")
async def create_post(
    body: PostCreateRequest,
    admin: UserProfile = Depends(get_admin_user),
    hub: Hub = Depends(get_hub),
):
    """Publish a blog post."""
    post = await hub.posts.create_post(
        admin,
        body.title,
        body.content,
        youtube_url=body.youtube_url,
        image_url=body.image_url,
        featured=body.featured,
    )
    metrics.content_created.labels(kind="post").inc()
    logger.info("admin published post", post_id=post.id, admin_id=admin.uid)
    return {"success": True, "post": post.to_doc()}


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: str,
    admin: UserProfile = Depends(get_admin_user),
    hub: Hub = Depends(get_hub),
):
    await hub.posts.delete_post(post_id)
    metrics.content_deleted.labels(kind="post").inc()
    logger.info("admin deleted post", post_id=post_id, admin_id=admin.uid)
    return {"success": True, "deleted": post_id}


@router.put("/subscriber-count")
async def set_subscriber_count(
    body: SubscriberCountRequest,
    admin: UserProfile = Depends(get_admin_user),
    hub: Hub = Depends(get_hub),
):
    value = await hub.posts.set_subscriber_count(body.count)
    return {"success": True, "subscriberCount": value.to_doc()}
