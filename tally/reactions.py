"""
Reaction Maintainer - set-membership tallies

A reaction is a boolean per (subject, user, tag). toggle_reaction() reads
one membership cell and flips it; nothing else is written. The count for a
tag is the size of its member map and is never stored.
"""

from typing import Any, Dict, Optional

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
from tally.adapters import ReactionShape

logger = get_logger(__name__).bind(component="tally")


def reaction_counts(subject: Optional[Dict[str, Any]], shape: ReactionShape) -> Dict[str, int]:
    """Count per tag (every allowed tag present, zero if unused)"""
    reactions = (subject or {}).get("reactions") or {}
    return {tag: len(reactions.get(tag) or {}) for tag in shape.tags}


def total_reactions(subject: Optional[Dict[str, Any]]) -> int:
    """Sum of every tag's member count"""
    reactions = (subject or {}).get("reactions") or {}
    return sum(len(members or {}) for members in reactions.values())


def user_reactions(subject: Optional[Dict[str, Any]], user_id: Optional[str]) -> Dict[str, bool]:
    """Which tags user_id currently holds on a subject"""
    reactions = (subject or {}).get("reactions") or {}
    return {tag: bool(user_id) and user_id in (members or {}) for tag, members in reactions.items()}


class ReactionMaintainer:
    """Toggles reaction cells in the document store"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def toggle_reaction(
        self,
        shape: ReactionShape,
        subject_id: str,
        user_id: str,
        tag: str,
    ) -> bool:
        """Flip user_id's membership in tag

        Returns:
            True when the user now holds the reaction, False when removed

        Raises:
            Unauthenticated: empty user_id
            InvalidSelection: tag not allowed for this module
            UnknownSubject: subject document missing
            WriteFailed: store read or write failed
        """
        if not user_id:
            raise Unauthenticated("Sign in to react", subject_id)

        canonical = shape.resolve_tag(tag)
        if canonical is None:
            raise InvalidSelection("Reaction not allowed here", subject_id, tag)

        try:
            if not await self.store.exists(shape.subject_path(subject_id)):
                raise UnknownSubject(f"{shape.module} subject not found", subject_id)

            cell = shape.cell_path(subject_id, canonical, user_id)
            if await self.store.get(cell):
                await self.store.remove(cell)
                member = False
            else:
                # A field write: fails instead of recreating a deleted subject
                await self.store.update(
                    shape.subject_path(subject_id), {shape.cell_field(canonical, user_id): True}
                )
                member = True
        except MissingDocumentError as e:
            raise UnknownSubject(f"{shape.module} subject not found", subject_id) from e
        except InvalidPathError:
            raise
        except StoreError as e:
            metrics.record_error("tally", e)
            logger.error(
                "reaction toggle failed",
                module=shape.module,
                subject_id=subject_id,
                tag=canonical,
                error=str(e),
            )
            raise WriteFailed("Could not update reaction", subject_id, e) from e

        metrics.reaction_toggles.labels(
            module=shape.module, state="added" if member else "removed"
        ).inc()
        logger.debug(
            "reaction toggled",
            module=shape.module,
            subject_id=subject_id,
            tag=canonical,
            member=member,
        )
        return member
