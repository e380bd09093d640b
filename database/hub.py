"""Hub - document store with repository pattern

Clean architecture: repositories own per-module document access, the tally
maintainers own counters, and Hub wires them to one shared store and
orchestrates the cross-module account operations.
"""

from typing import Dict, List, Optional

from config import config, get_logger
from database.memory_store import MemoryDocumentStore
from database.models import UserProfile
from database.postgres_store import PostgresDocumentStore
from database.repositories_async import (
    IdeaRepository,
    PollRepository,
    PostRepository,
    QuestionRepository,
    UserRepository,
    WouldYouRatherRepository,
)
from database.store import DocumentStore
from exceptions import ConfigurationError, ValidationError
from tally.maintainer import FlatTallyMaintainer
from tally.reactions import ReactionMaintainer

logger = get_logger(__name__).bind(component="hub")

CONTENT_TYPES = ("question", "poll", "idea", "wyr")


class Hub:
    """Document store plus every repository and tally maintainer

    Usage:
        hub = await Hub.create()
        polls = await hub.polls.get_polls()
        await hub.tally.apply_choice(POLLS, poll_id, user.uid, option_id)
        await hub.close()
    """

    store: DocumentStore

    users: UserRepository
    questions: QuestionRepository
    polls: PollRepository
    ideas: IdeaRepository
    wyr: WouldYouRatherRepository
    posts: PostRepository

    tally: FlatTallyMaintainer
    reactions: ReactionMaintainer

    def __init__(self, store: DocumentStore):
        """Initialize with a store; Hub.create() picks the configured backend."""
        self.store = store

        self.users = UserRepository(store)
        self.questions = QuestionRepository(store)
        self.polls = PollRepository(store)
        self.ideas = IdeaRepository(store)
        self.wyr = WouldYouRatherRepository(store)
        self.posts = PostRepository(store)

        self.tally = FlatTallyMaintainer(store)
        self.reactions = ReactionMaintainer(store)

        logger.info("hub initialized with repositories", backend=store.backend)

    @classmethod
    async def create(cls, backend: Optional[str] = None) -> "Hub":
        """Create a hub on the configured store backend

        Args:
            backend: "memory" or "postgres" (defaults to config.STORE_BACKEND)
        """
        backend = backend or config.STORE_BACKEND
        if backend == "memory":
            return cls(MemoryDocumentStore())
        if backend == "postgres":
            return cls(await PostgresDocumentStore.create())
        raise ConfigurationError(f"Unknown store backend: {backend}", "HUB_STORE_BACKEND")

    async def close(self) -> None:
        await self.store.close()
        logger.info("hub closed")

    async def health_check(self) -> bool:
        """Round-trip read against the store"""
        await self.store.get("site")
        return True

    # ------------------------------------------------------------------
    # Account orchestration
    # ------------------------------------------------------------------

    async def get_user_content(self, user: UserProfile) -> Dict[str, List[dict]]:
        """Everything the user authored, newest first per type."""
        questions = await self.questions.get_questions()
        polls = await self.polls.get_polls()
        ideas = await self.ideas.get_ideas()
        wyr_questions = await self.wyr.get_questions()
        return {
            "questions": [q.to_doc() for q in questions if q.author_id == user.uid],
            "polls": [p.to_doc() for p in polls if p.author_id == user.uid],
            "ideas": [i.to_doc() for i in ideas if i.author_id == user.uid],
            "wyr": [w.to_doc() for w in wyr_questions if w.author_id == user.uid],
        }

    async def delete_content(self, user: UserProfile, content_type: str, item_id: str) -> bool:
        """Delete one item by type; ownership is checked by the repository.

        Raises:
            ValidationError: unknown content type
        """
        if content_type == "question":
            return await self.questions.delete_question(user, item_id)
        if content_type == "poll":
            return await self.polls.delete_poll(user, item_id)
        if content_type == "idea":
            return await self.ideas.delete_idea(user, item_id)
        if content_type == "wyr":
            return await self.wyr.delete_question(user, item_id)
        raise ValidationError(
            f"Content type must be one of {list(CONTENT_TYPES)}",
            field="type",
            value=content_type,
        )
