"""Public blog API - admin posts and the subscriber count."""

from fastapi import APIRouter, Depends

from database.hub import Hub
from database.models import AdminPost
from database.repositories_async.posts import FILTER_ALL
from server.dependencies import get_hub
from server.utils.validation import extract_youtube_id

router = APIRouter(prefix="/api/blog", tags=["blog"])


def _post_view(post: AdminPost) -> dict:
    doc = post.to_doc()
    doc["youtubeId"] = extract_youtube_id(post.youtube_url)
    return doc


@router.get("/posts")
async def list_posts(filter: str = FILTER_ALL, hub: Hub = Depends(get_hub)):
    """Posts newest first; filter=featured for featured posts only."""
    posts = await hub.posts.get_posts(filter)
    return {"success": True, "filter": filter, "posts": [_post_view(p) for p in posts]}


@router.get("/subscriber-count")
async def subscriber_count(hub: Hub = Depends(get_hub)):
    value = await hub.posts.get_subscriber_count()
    return {"success": True, "count": value.count, "updatedAt": value.updated_at}
