"""Denormalized vote and reaction tallies shared by every module"""

from tally.adapters import (
    ANSWER_REACTIONS,
    IDEA_REACTIONS,
    POLLS,
    WOULD_YOU_RATHER,
    PollTally,
    ReactionShape,
    TallyShape,
    WouldYouRatherTally,
)
from tally.leaderboard import AuthorScore, rank_authors
from tally.maintainer import ChoiceDelta, FlatTallyMaintainer, UpdatedTally, compute_choice_delta
from tally.reactions import ReactionMaintainer, reaction_counts, total_reactions, user_reactions

__all__ = [
    "ANSWER_REACTIONS",
    "IDEA_REACTIONS",
    "POLLS",
    "WOULD_YOU_RATHER",
    "PollTally",
    "ReactionShape",
    "TallyShape",
    "WouldYouRatherTally",
    "AuthorScore",
    "rank_authors",
    "ChoiceDelta",
    "FlatTallyMaintainer",
    "UpdatedTally",
    "compute_choice_delta",
    "ReactionMaintainer",
    "reaction_counts",
    "total_reactions",
    "user_reactions",
]
