from .base import ChatBackend
from .factory import create_chat_backend
from .models import (
    AttachedMedia,
    ChatTurn,
    Fragment,
    FragmentStream,
    Quiz,
    QuizQuestion,
    Sender,
    SuggestionList,
)
from .providers import GeminiChatBackend

__all__ = [
    "AttachedMedia",
    "ChatBackend",
    "ChatTurn",
    "Fragment",
    "FragmentStream",
    "GeminiChatBackend",
    "Quiz",
    "QuizQuestion",
    "Sender",
    "SuggestionList",
    "create_chat_backend",
]
