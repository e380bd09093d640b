"""In-process document store

Holds the whole tree in a dict. Each primitive runs to completion without
awaiting between its read and its write, so on a single event loop every
operation (increment included) is atomic. Used for development and tests.
"""

import copy
from typing import Any, Dict, List

from database.paths import (
    document_of,
    get_in,
    increment_in,
    remove_in,
    set_in,
    split_path,
    update_in,
)
from database.store import DocumentStore
from exceptions import MissingDocumentError


class MemoryDocumentStore(DocumentStore):
    """Dict-backed document store"""

    backend = "memory"

    def __init__(self, initial: Dict[str, Any] = None):
        super().__init__()
        self._root: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def _require_document(self, target: List[str]) -> None:
        """Field writes need their document to exist"""
        document = document_of(target)
        if document is not None and get_in(self._root, document) is None:
            raise MissingDocumentError("Document does not exist", path="/".join(document))

    async def get(self, path: str) -> Any:
        return copy.deepcopy(get_in(self._root, split_path(path)))

    async def set(self, path: str, value: Any) -> None:
        self._root = set_in(self._root, split_path(path), copy.deepcopy(value))
        await self._publish(path)

    async def set_if_absent(self, path: str, value: Any) -> bool:
        segments = split_path(path)
        if get_in(self._root, segments) is not None:
            return False
        self._root = set_in(self._root, segments, copy.deepcopy(value))
        await self._publish(path)
        return True

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        if not fields:
            return
        segments = split_path(path)
        for key, value in fields.items():
            if value is not None:
                self._require_document(segments + split_path(key))
        self._root = update_in(self._root, segments, copy.deepcopy(fields))
        await self._publish(path)

    async def remove(self, path: str) -> None:
        if remove_in(self._root, split_path(path)):
            await self._publish(path)

    async def increment(
        self, path: str, deltas: Dict[str, int], floor: int = 0
    ) -> Dict[str, int]:
        if not deltas:
            return {}
        segments = split_path(path)
        for key in deltas:
            self._require_document(segments + split_path(key))
        self._root, results = increment_in(self._root, segments, deltas, floor)
        await self._publish(path)
        return results

    def dump(self) -> Dict[str, Any]:
        """Copy of the whole tree (debugging and tests)"""
        return copy.deepcopy(self._root)
