"""
Leaderboard - lifetime reaction score per author

rank_authors() is pure: it takes idea snapshots and returns the top authors.
Score = every reaction tag's member count, summed over all of an author's
ideas.

Ties are broken by who reached their final score first: the position of
the author's last idea that scored anything (or of their first idea when
nothing scored), then by first appearance.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

from tally.reactions import total_reactions

LEADERBOARD_SIZE = 5


@dataclass
class AuthorScore:
    author_id: str
    author_name: str
    score: int

    def as_tuple(self) -> Tuple[str, str, int]:
        return (self.author_id, self.author_name, self.score)

    def to_dict(self) -> dict:
        return {"authorId": self.author_id, "authorName": self.author_name, "score": self.score}


def rank_authors(
    subjects: Iterable[Dict[str, Any]],
    limit: int = LEADERBOARD_SIZE,
) -> List[AuthorScore]:
    """Top authors by total reactions received

    Examples:
        >>> ideas = [
        ...     {"authorId": "X", "authorName": "X", "reactions": {"🔥": {"a": True, "b": True, "c": True}}},
        ...     {"authorId": "Y", "authorName": "Y", "reactions": {"🔥": {"a": True, "b": True, "c": True, "d": True, "e": True}}},
        ...     {"authorId": "X", "authorName": "X", "reactions": {"💭": {"a": True, "b": True}}},
        ... ]
        >>> [entry.as_tuple() for entry in rank_authors(ideas)]
        [('Y', 'Y', 5), ('X', 'X', 5)]
    """
    scores: Dict[str, AuthorScore] = {}
    first_seen: Dict[str, int] = {}
    settled_at: Dict[str, int] = {}

    for index, subject in enumerate(subjects):
        author_id = subject.get("authorId")
        if not author_id:
            continue

        if author_id not in scores:
            scores[author_id] = AuthorScore(
                author_id=author_id,
                author_name=subject.get("authorName") or "Anonymous",
                score=0,
            )
            first_seen[author_id] = index
            settled_at[author_id] = index

        points = total_reactions(subject)
        if points:
            scores[author_id].score += points
            settled_at[author_id] = index

    ranked = sorted(
        scores.values(),
        key=lambda entry: (
            -entry.score,
            settled_at[entry.author_id],
            first_seen[entry.author_id],
        ),
    )
    return ranked[:limit]
