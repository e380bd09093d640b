"""Base repository over the shared document store

All repositories inherit from BaseRepository and share:
- One DocumentStore (no store per-instance)
- Typed reads through the document models
- Ownership checks for edits and deletes
- Logging infrastructure

Return Type Conventions
-----------------------
All repository methods follow these patterns for consistency:

    get_X(id) -> Optional[T]
        Single document lookup by id.
        Returns None if the document is missing.

    get_Xs(...) -> List[T]
        Every document of a collection, newest first unless noted.
        Returns empty list [] if none exist.

    require_X(id) -> T
        Like get_X but raises NotFoundError.

Writes return the stored model. Deletes return True when something was
removed; dependent records (votes, answers, comments) go with it in the
same call, best effort and without a transaction.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from config import get_logger
from database.models import Document, UserProfile
from database.store import DocumentStore
from exceptions import NotFoundError, PermissionDeniedError

logger = get_logger(__name__).bind(component="repository")

T = TypeVar("T", bound=Document)


class BaseRepository:
    """Base class for document store repositories

    Design Principles:
    - Store is passed in, not created (shared by every repository)
    - Models in, models out; raw dicts stay inside the repository
    - Ownership is checked here, not in routes
    """

    def __init__(self, store: DocumentStore):
        """Initialize repository with the shared document store

        Args:
            store: document store backend (shared across all repositories)
        """
        self.store = store

    async def _get(self, model: Type[T], path: str) -> Optional[T]:
        """Fetch one document as a model"""
        return model.from_doc(await self.store.get(path))

    async def _list(self, model: Type[T], collection: str, oldest_first: bool = False) -> List[T]:
        """Every document of a collection, newest first unless oldest_first

        Equal timestamps keep store order.
        """
        raw = await self.store.get(collection)
        return self._by_created(model, raw, oldest_first)

    @staticmethod
    def _by_created(model: Type[T], raw: Any, oldest_first: bool = False) -> List[T]:
        if isinstance(raw, dict):
            values = list(raw.values())
        elif isinstance(raw, list):
            values = [value for value in raw if value]
        else:
            values = []
        items = [model.model_validate(value) for value in values if isinstance(value, dict)]
        items.sort(key=lambda item: getattr(item, "created_at", 0), reverse=not oldest_first)
        return items

    @staticmethod
    def _require(item: Optional[T], kind: str, item_id: str) -> T:
        if item is None:
            raise NotFoundError(f"{kind.capitalize()} not found", kind=kind, item_id=item_id)
        return item

    @staticmethod
    def _ensure_author(item: Document, user: UserProfile, kind: str) -> None:
        """Only the author may edit"""
        if getattr(item, "author_id", None) != user.uid:
            raise PermissionDeniedError(
                f"Only the author can edit this {kind}",
                {"kind": kind, "user_id": user.uid},
            )

    @staticmethod
    def _ensure_author_or_admin(item: Document, user: UserProfile, kind: str) -> None:
        """Author or an admin may delete"""
        if getattr(item, "author_id", None) != user.uid and not user.is_admin:
            raise PermissionDeniedError(
                f"Not allowed to delete this {kind}",
                {"kind": kind, "user_id": user.uid},
            )

    async def _remove_matching(
        self, collection: str, field: str, value: str
    ) -> int:
        """Remove every document of collection whose field equals value"""
        raw = await self.store.get(collection)
        if not isinstance(raw, dict):
            return 0
        removed = 0
        for doc_id, body in raw.items():
            if isinstance(body, dict) and body.get(field) == value:
                await self.store.remove(f"{collection}/{doc_id}")
                removed += 1
        return removed

    @staticmethod
    def _display_author(user: UserProfile) -> Dict[str, str]:
        return {"author_id": user.uid, "author_name": user.display_name or "Anonymous"}
