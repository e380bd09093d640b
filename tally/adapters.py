"""
Tally shapes - where each module keeps its tally in the store

The maintainers never know about polls or ideas. A shape tells them:
- which document holds the subject
- which selections are valid
- which counter field belongs to a selection
- where the per-user Choice Record lives

Flat shapes (one live choice per user):
    POLLS       polls/{id}           options/{i}/voteCount + voteCount
    WYR         wyr_questions/{id}   votesA / votesB (no stored total)

Reaction shapes (independent boolean per tag):
    IDEA_REACTIONS    ideas/{id}/reactions/{tag}/{uid}     🔥 💭
    ANSWER_REACTIONS  answers/{id}/reactions/{tag}/{uid}   🔥 ❤️ 😆
"""

from typing import Any, Dict, List, Optional

from database.id_generation import generate_choice_record_id
from database.models import now_ms


class TallyShape:
    """Base class for flat-count tallies"""

    module: str = "abstract"
    subject_collection: str = ""
    choice_collection: str = ""
    # Counter holding the total, None when the total is derived from the counts
    total_field: Optional[str] = None

    def subject_path(self, subject_id: str) -> str:
        return f"{self.subject_collection}/{subject_id}"

    def choice_path(self, subject_id: str, user_id: str) -> str:
        return f"{self.choice_collection}/{generate_choice_record_id(subject_id, user_id)}"

    def selections(self, subject: Dict[str, Any]) -> List[str]:
        raise NotImplementedError

    def count_field(self, subject: Dict[str, Any], selection: str) -> str:
        """Counter key (relative to the subject) for a valid selection"""
        raise NotImplementedError

    def counts(self, subject: Dict[str, Any]) -> Dict[str, int]:
        raise NotImplementedError

    def read_selection(self, record: Optional[Dict[str, Any]]) -> Optional[str]:
        raise NotImplementedError

    def choice_record(self, subject_id: str, user_id: str, selection: str) -> Dict[str, Any]:
        raise NotImplementedError

    def stored_total(self, subject: Dict[str, Any]) -> int:
        if self.total_field is None:
            return sum(self.counts(subject).values())
        return int(subject.get(self.total_field) or 0)


class PollTally(TallyShape):
    """Poll options: per-option voteCount plus the poll's voteCount"""

    module = "polls"
    subject_collection = "polls"
    choice_collection = "votes"
    total_field = "voteCount"

    def _options(self, subject: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [option for option in subject.get("options") or [] if option]

    def selections(self, subject):
        return [option["id"] for option in self._options(subject)]

    def count_field(self, subject, selection):
        for index, option in enumerate(subject.get("options") or []):
            if option and option.get("id") == selection:
                return f"options/{index}/voteCount"
        raise KeyError(selection)

    def counts(self, subject):
        return {
            option["id"]: int(option.get("voteCount") or 0)
            for option in self._options(subject)
        }

    def read_selection(self, record):
        return record.get("optionId") if record else None

    def choice_record(self, subject_id, user_id, selection):
        return {
            "pollId": subject_id,
            "optionId": selection,
            "userId": user_id,
            "createdAt": now_ms(),
        }


class WouldYouRatherTally(TallyShape):
    """Binary choice: votesA / votesB"""

    module = "wyr"
    subject_collection = "wyr_questions"
    choice_collection = "wyr_votes"
    total_field = None

    FIELDS = {"A": "votesA", "B": "votesB"}

    def selections(self, subject):
        return list(self.FIELDS)

    def count_field(self, subject, selection):
        return self.FIELDS[selection]

    def counts(self, subject):
        return {choice: int(subject.get(field) or 0) for choice, field in self.FIELDS.items()}

    def read_selection(self, record):
        return record.get("choice") if record else None

    def choice_record(self, subject_id, user_id, selection):
        return {
            "questionId": subject_id,
            "choice": selection,
            "userId": user_id,
            "createdAt": now_ms(),
        }


class ReactionShape:
    """Set-membership tally: reactions/{tag}/{user_id} = true"""

    def __init__(self, module: str, subject_collection: str, tags: List[str], aliases: Dict[str, str]):
        self.module = module
        self.subject_collection = subject_collection
        self.tags = list(tags)
        self.aliases = dict(aliases)

    def subject_path(self, subject_id: str) -> str:
        return f"{self.subject_collection}/{subject_id}"

    def cell_field(self, tag: str, user_id: str) -> str:
        """Membership cell relative to the subject document"""
        return f"reactions/{tag}/{user_id}"

    def cell_path(self, subject_id: str, tag: str, user_id: str) -> str:
        return f"{self.subject_path(subject_id)}/{self.cell_field(tag, user_id)}"

    def resolve_tag(self, tag: str) -> Optional[str]:
        """Canonical tag for an emoji or its alias, None if not allowed"""
        if tag in self.tags:
            return tag
        return self.aliases.get((tag or "").strip().lower())


POLLS = PollTally()
WOULD_YOU_RATHER = WouldYouRatherTally()

IDEA_REACTIONS = ReactionShape(
    module="ideas",
    subject_collection="ideas",
    tags=["🔥", "💭"],
    aliases={"fire": "🔥", "thought": "💭"},
)

ANSWER_REACTIONS = ReactionShape(
    module="answers",
    subject_collection="answers",
    tags=["🔥", "❤️", "😆"],
    aliases={"fire": "🔥", "heart": "❤️", "laugh": "😆"},
)
