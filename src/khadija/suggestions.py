"""Follow-up suggestion chips shown at the start of a conversation.

The request for suggestions races with the user: if they start typing or
send a message while the request is in flight, the late result is thrown
away instead of being rendered over their input.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence

from .config import FALLBACK_SUGGESTIONS, MAX_SUGGESTIONS, Settings
from .llm.base import ChatBackend
from .llm.models import SuggestionList
from .prompts import suggestions_prompt

logger = logging.getLogger(__name__)

SuggestionSource = Callable[[], Awaitable[Sequence[str]]]


class SuggestionView(ABC):
    """The surface the chips are drawn on, plus the input it watches."""

    @abstractmethod
    def input_text(self) -> str:
        """Current content of the message input."""

    @abstractmethod
    def is_loading(self) -> bool:
        """Whether the main answer loading indicator is shown."""

    @abstractmethod
    def show_placeholders(self, count: int) -> None: ...

    @abstractmethod
    def show_suggestions(self, suggestions: list[str]) -> None: ...

    @abstractmethod
    def clear(self) -> None:
        """Hide the chip area and remove its content."""


class SuggestionRaceGuard:
    """Fetches suggestions at most once at a time and drops stale results.

    Args:
        source: Coroutine function returning candidate suggestions
        view: Where placeholders and chips are shown
        fallback: Shown when the source fails or returns nothing usable
        limit: Maximum number of chips
    """

    def __init__(
        self,
        source: SuggestionSource,
        view: SuggestionView,
        fallback: Sequence[str] = FALLBACK_SUGGESTIONS,
        limit: int = MAX_SUGGESTIONS,
    ):
        self._source = source
        self._view = view
        self._fallback = list(fallback)
        self._limit = limit
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def refresh(self, history_length: int) -> list[str] | None:
        """Fetch and show suggestions if the conversation is just starting.

        Returns:
            The suggestions shown, or None when nothing was shown
        """
        if history_length > 1:
            self._view.clear()
            return None
        if self._busy or self._view.input_text().strip():
            return None

        self._busy = True
        self._view.show_placeholders(self._limit)
        try:
            candidates = await self._source()
        except Exception as e:
            logger.warning("Suggestion request failed, using fallback: %s", e)
            candidates = []
        finally:
            self._busy = False

        suggestions = [s.strip() for s in candidates if isinstance(s, str) and s.strip()]
        if not suggestions:
            suggestions = list(self._fallback)
        suggestions = suggestions[: self._limit]

        # The user moved on while we were waiting
        if self._view.input_text().strip() or self._view.is_loading():
            self._view.clear()
            return None

        self._view.show_suggestions(suggestions)
        return suggestions


class SuggestionGenerator:
    """Asks the chat backend for profile-aware opening questions."""

    def __init__(self, backend: ChatBackend, settings: Callable[[], Settings]):
        self._backend = backend
        self._settings = settings

    async def __call__(self) -> list[str]:
        prompt = suggestions_prompt(self._settings())
        result = await self._backend.generate_structured(prompt, SuggestionList)
        return result.suggestions[:MAX_SUGGESTIONS]
