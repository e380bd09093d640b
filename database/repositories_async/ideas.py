"""Idea repository - Daily Idea Drop.

One idea per user per UTC day. The day is claimed at idea_days/{date}_{uid}
with the store's create-if-absent write before the idea is stored, so two
concurrent submissions cannot both pass. Ideas carry their reactions inline
(reactions/{tag}/{uid}); the reaction maintainer owns those cells.
"""

import random
from typing import List, Optional

from config import get_logger
from database.id_generation import generate_document_id
from database.models import Idea, UserProfile, now_ms, utc_date
from database.repositories_async.base import BaseRepository
from exceptions import ConflictError, StoreError, ValidationError
from server.utils.validation import MAX_QUESTION_LENGTH, clean_text
from tally.leaderboard import AuthorScore, rank_authors
from tally.reactions import total_reactions

logger = get_logger(__name__).bind(component="idea_repository")

SORT_LATEST = "latest"
SORT_POPULAR = "popular"
SORT_ORDERS = (SORT_LATEST, SORT_POPULAR)


def _day_path(date: str, user_id: str) -> str:
    return f"idea_days/{date}_{user_id}"


class IdeaRepository(BaseRepository):
    """Repository for daily ideas."""

    async def get_idea(self, idea_id: str) -> Optional[Idea]:
        return await self._get(Idea, f"ideas/{idea_id}")

    async def require_idea(self, idea_id: str) -> Idea:
        return self._require(await self.get_idea(idea_id), "idea", idea_id)

    async def get_ideas(self, sort: str = SORT_LATEST) -> List[Idea]:
        """All ideas; latest = newest first, popular = most reactions first.

        Popular ordering is stable, so equal scores stay newest first.
        """
        if sort not in SORT_ORDERS:
            raise ValidationError(f"Sort must be one of {list(SORT_ORDERS)}", field="sort", value=sort)

        ideas = await self._list(Idea, "ideas")
        if sort == SORT_POPULAR:
            ideas.sort(key=lambda idea: total_reactions(idea.to_doc()), reverse=True)
        return ideas

    async def get_random_idea(self) -> Optional[Idea]:
        ideas = await self._list(Idea, "ideas")
        return random.choice(ideas) if ideas else None

    async def get_leaderboard(self) -> List[AuthorScore]:
        """Top authors by lifetime reactions, in submission order for ties."""
        ideas = await self._list(Idea, "ideas", oldest_first=True)
        return rank_authors(idea.to_doc() for idea in ideas)

    async def has_submitted_today(self, user_id: str) -> bool:
        return await self.store.exists(_day_path(utc_date(), user_id))

    async def create_idea(self, user: UserProfile, text: str) -> Idea:
        """Submit today's idea.

        Raises:
            ConflictError: user already submitted an idea today (UTC)
        """
        content = clean_text(text, "Idea", MAX_QUESTION_LENGTH)
        created_at = now_ms()
        today = utc_date(created_at)

        idea = Idea(
            id=generate_document_id(created_at),
            text=content,
            created_at=created_at,
            date=today,
            **self._display_author(user),
        )

        day = _day_path(today, user.uid)
        claimed = await self.store.set_if_absent(day, {"ideaId": idea.id, "createdAt": created_at})
        if not claimed:
            raise ConflictError(
                "You already shared an idea today",
                {"user_id": user.uid, "date": today},
            )

        try:
            await self.store.set(f"ideas/{idea.id}", idea.to_doc())
        except StoreError:
            await self.store.remove(day)
            raise
        logger.info("idea created", idea_id=idea.id, author_id=user.uid, date=today)
        return idea

    async def edit_idea(self, user: UserProfile, idea_id: str, text: str) -> Idea:
        idea = await self.require_idea(idea_id)
        self._ensure_author(idea, user, "idea")

        content = clean_text(text, "Idea", MAX_QUESTION_LENGTH)
        updated_at = now_ms()
        await self.store.update(f"ideas/{idea_id}", {"text": content, "updatedAt": updated_at})
        return idea.model_copy(update={"text": content, "updated_at": updated_at})

    async def delete_idea(self, user: UserProfile, idea_id: str) -> bool:
        idea = await self.require_idea(idea_id)
        self._ensure_author_or_admin(idea, user, "idea")

        await self.store.remove(f"ideas/{idea_id}")
        # Frees the author's slot when the idea was from today
        await self.store.remove(_day_path(idea.date, idea.author_id))
        logger.info("idea deleted", idea_id=idea_id, user_id=user.uid)
        return True
