"""Document store repositories, one per hub module"""

from database.repositories_async.base import BaseRepository
from database.repositories_async.ideas import IdeaRepository
from database.repositories_async.polls import PollRepository
from database.repositories_async.posts import PostRepository
from database.repositories_async.questions import QuestionRepository
from database.repositories_async.users import UserRepository
from database.repositories_async.wyr import WouldYouRatherRepository

__all__ = [
    "BaseRepository",
    "IdeaRepository",
    "PollRepository",
    "PostRepository",
    "QuestionRepository",
    "UserRepository",
    "WouldYouRatherRepository",
]
