"""
Flat Tally Maintainer - one live choice per (subject, user)

apply_choice() turns a user's prior choice and new choice into the minimal
counter deltas and issues them:

    previous == new          -> nothing written
    previous valid, differs  -> previous -1 (floored at 0), new +1, total same
    previous stale           -> new +1, total same (no decrement issued)
    no previous              -> new +1, total +1

Counters move through the store's atomic increment, so concurrent voters on
one subject never overwrite each other. One user's concurrent calls on one
subject are serialized by a striped lock, so a double submit counts once.
"""

import asyncio
import time
from dataclasses import dataclass, field, asdict
from typing import Dict, Optional, Tuple

from config import get_logger
from database.store import DocumentStore
from exceptions import (
    InvalidPathError,
    InvalidSelection,
    MissingDocumentError,
    StoreError,
    Unauthenticated,
    UnknownSubject,
    WriteFailed,
)
from server.metrics import metrics
from tally.adapters import TallyShape

logger = get_logger(__name__).bind(component="tally")

DEFAULT_LOCK_STRIPES = 64


@dataclass
class ChoiceDelta:
    """Counter changes for one choice: per-selection deltas plus total delta"""
    counts: Dict[str, int] = field(default_factory=dict)
    total: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.counts and self.total == 0


@dataclass
class UpdatedTally:
    """Tally after a choice was applied"""
    subject_id: str
    selection: str
    previous_selection: Optional[str]
    counts: Dict[str, int]
    total: int
    changed: bool

    def to_dict(self) -> dict:
        return asdict(self)


def compute_choice_delta(
    previous: Optional[str],
    new: str,
    valid_selections,
) -> ChoiceDelta:
    """Minimal counter deltas to move a user from previous to new

    Examples:
        >>> compute_choice_delta(None, "a", ["a", "b"])
        ChoiceDelta(counts={'a': 1}, total=1)
        >>> compute_choice_delta("a", "b", ["a", "b"])
        ChoiceDelta(counts={'a': -1, 'b': 1}, total=0)
    """
    if previous == new:
        return ChoiceDelta()
    if previous is None:
        return ChoiceDelta(counts={new: 1}, total=1)
    if previous in valid_selections:
        return ChoiceDelta(counts={previous: -1, new: 1}, total=0)
    # Previous option no longer exists: nothing to decrement
    return ChoiceDelta(counts={new: 1}, total=0)


class FlatTallyMaintainer:
    """Applies single-choice votes to a store-backed flat tally"""

    def __init__(self, store: DocumentStore, lock_stripes: int = DEFAULT_LOCK_STRIPES):
        self.store = store
        self._locks = [asyncio.Lock() for _ in range(lock_stripes)]

    def _lock_for(self, subject_id: str, user_id: str) -> asyncio.Lock:
        return self._locks[hash((subject_id, user_id)) % len(self._locks)]

    async def current_selection(
        self, shape: TallyShape, subject_id: str, user_id: str
    ) -> Optional[str]:
        """The user's live selection on a subject, or None"""
        record = await self.store.get(shape.choice_path(subject_id, user_id))
        return shape.read_selection(record)

    async def apply_choice(
        self,
        shape: TallyShape,
        subject_id: str,
        user_id: str,
        new_selection: str,
    ) -> UpdatedTally:
        """Record user_id's choice of new_selection on a subject

        Raises:
            Unauthenticated: empty user_id
            UnknownSubject: subject document missing
            InvalidSelection: new_selection is not an option of the subject
            WriteFailed: a store read or write failed
        """
        if not user_id:
            raise Unauthenticated("Sign in to vote", subject_id)

        async with self._lock_for(subject_id, user_id):
            try:
                return await self._apply_locked(shape, subject_id, user_id, new_selection)
            except InvalidPathError:
                raise
            except StoreError as e:
                metrics.tally_writes.labels(module=shape.module, outcome="failed").inc()
                metrics.record_error("tally", e)
                logger.error(
                    "tally write failed",
                    module=shape.module,
                    subject_id=subject_id,
                    user_id=user_id,
                    error=str(e),
                )
                raise WriteFailed("Could not record vote", subject_id, e) from e

    async def _apply_locked(
        self,
        shape: TallyShape,
        subject_id: str,
        user_id: str,
        new_selection: str,
    ) -> UpdatedTally:
        subject_path = shape.subject_path(subject_id)
        subject = await self.store.get(subject_path)
        if not isinstance(subject, dict):
            raise UnknownSubject(f"{shape.module} subject not found", subject_id)

        valid = shape.selections(subject)
        if new_selection not in valid:
            raise InvalidSelection("Not a valid option", subject_id, new_selection)

        previous = await self.current_selection(shape, subject_id, user_id)
        delta = compute_choice_delta(previous, new_selection, valid)
        counts = shape.counts(subject)

        if delta.is_empty:
            metrics.tally_writes.labels(module=shape.module, outcome="unchanged").inc()
            return UpdatedTally(
                subject_id=subject_id,
                selection=new_selection,
                previous_selection=previous,
                counts=counts,
                total=shape.stored_total(subject),
                changed=False,
            )

        field_deltas, field_selection = self._field_deltas(shape, subject, delta)

        start = time.time()
        await self.store.set(
            shape.choice_path(subject_id, user_id),
            shape.choice_record(subject_id, user_id, new_selection),
        )
        try:
            results = await self.store.increment(subject_path, field_deltas)
        except MissingDocumentError as e:
            # Subject deleted between the read and the write
            await self.store.remove(shape.choice_path(subject_id, user_id))
            metrics.tally_writes.labels(module=shape.module, outcome="gone").inc()
            raise UnknownSubject(f"{shape.module} subject not found", subject_id) from e
        metrics.store_operation_duration.labels(operation="apply_choice").observe(
            time.time() - start
        )

        for key, value in results.items():
            if key in field_selection:
                counts[field_selection[key]] = value

        if shape.total_field is None:
            total = sum(counts.values())
        elif shape.total_field in results:
            total = results[shape.total_field]
        else:
            total = shape.stored_total(subject)

        outcome = "new" if previous is None else "switched"
        metrics.tally_writes.labels(module=shape.module, outcome=outcome).inc()
        logger.info(
            "choice applied",
            module=shape.module,
            subject_id=subject_id,
            previous=previous,
            selection=new_selection,
            total=total,
        )

        return UpdatedTally(
            subject_id=subject_id,
            selection=new_selection,
            previous_selection=previous,
            counts=counts,
            total=total,
            changed=True,
        )

    @staticmethod
    def _field_deltas(
        shape: TallyShape, subject: dict, delta: ChoiceDelta
    ) -> Tuple[Dict[str, int], Dict[str, str]]:
        """Map selection deltas to counter fields of the subject document"""
        field_deltas: Dict[str, int] = {}
        field_selection: Dict[str, str] = {}
        for selection, change in delta.counts.items():
            key = shape.count_field(subject, selection)
            field_deltas[key] = change
            field_selection[key] = selection
        if delta.total and shape.total_field is not None:
            field_deltas[shape.total_field] = delta.total
        return field_deltas, field_selection
