"""Admin content repository - blog posts and the subscriber count.

Posts live at admin_posts/{id}; the single subscriber count document at
site/subscriber_count. Callers are checked for the admin role in the API
layer before any write here.
"""

from typing import List, Optional

from config import get_logger
from database.id_generation import generate_document_id
from database.models import AdminPost, SubscriberCount, UserProfile, now_ms
from database.repositories_async.base import BaseRepository
from exceptions import ValidationError
from server.utils.validation import clean_optional_url, clean_text

logger = get_logger(__name__).bind(component="post_repository")

SUBSCRIBER_COUNT_PATH = "site/subscriber_count"

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 20000

FILTER_ALL = "all"
FILTER_FEATURED = "featured"


class PostRepository(BaseRepository):
    """Repository for admin posts and site counters."""

    async def get_post(self, post_id: str) -> Optional[AdminPost]:
        return await self._get(AdminPost, f"admin_posts/{post_id}")

    async def get_posts(self, filter_by: str = FILTER_ALL) -> List[AdminPost]:
        """Posts newest first, optionally only featured ones."""
        if filter_by not in (FILTER_ALL, FILTER_FEATURED):
            raise ValidationError("Filter must be 'all' or 'featured'", field="filter", value=filter_by)

        posts = await self._list(AdminPost, "admin_posts")
        if filter_by == FILTER_FEATURED:
            posts = [post for post in posts if post.featured]
        return posts

    async def create_post(
        self,
        admin: UserProfile,
        title: str,
        content: str,
        youtube_url: Optional[str] = None,
        image_url: Optional[str] = None,
        featured: bool = False,
    ) -> AdminPost:
        post = AdminPost(
            id=generate_document_id(),
            title=clean_text(title, "Title", MAX_TITLE_LENGTH),
            content=clean_text(content, "Content", MAX_CONTENT_LENGTH),
            youtube_url=clean_optional_url(youtube_url, "YouTube URL"),
            image_url=clean_optional_url(image_url, "Image URL"),
            featured=featured,
            **self._display_author(admin),
        )
        await self.store.set(f"admin_posts/{post.id}", post.to_doc())
        logger.info("admin post created", post_id=post.id, featured=featured)
        return post

    async def delete_post(self, post_id: str) -> bool:
        post = self._require(await self.get_post(post_id), "post", post_id)
        await self.store.remove(f"admin_posts/{post.id}")
        logger.info("admin post deleted", post_id=post_id)
        return True

    async def get_subscriber_count(self) -> SubscriberCount:
        count = await self._get(SubscriberCount, SUBSCRIBER_COUNT_PATH)
        return count or SubscriberCount()

    async def set_subscriber_count(self, count: int) -> SubscriberCount:
        if count < 0:
            raise ValidationError("Subscriber count cannot be negative", field="count", value=count)
        value = SubscriberCount(count=count, updated_at=now_ms())
        await self.store.set(SUBSCRIBER_COUNT_PATH, value.to_doc())
        logger.info("subscriber count updated", count=count)
        return value
