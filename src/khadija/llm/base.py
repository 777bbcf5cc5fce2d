from abc import ABC, abstractmethod
from typing import Any, TypeVar

from pydantic import BaseModel

from .models import AttachedMedia, FragmentStream

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ChatBackend(ABC):
    """Abstract base class for streaming chat backends.

    This module hides the design decision of which generative backend
    answers the user. Implementations handle:
    - Client setup and authentication
    - Conversion of prompt text and inline media to the wire format
    - Extraction of text and grounding URLs from each streamed chunk
    - Raising on safety blocks instead of returning partial text

    Supports async context manager protocol for proper resource cleanup:
        async with backend:
            stream = await backend.send_message_stream("Bonjour")
    """

    @abstractmethod
    def start_session(self, system_instruction: str) -> None:
        """Start (or restart) the chat session with a system instruction.

        Previous conversation context held by the backend is dropped.
        """

    @abstractmethod
    async def send_message_stream(
        self,
        message: str,
        media: AttachedMedia | None = None,
    ) -> FragmentStream:
        """Send one user message in the live session and stream the answer.

        Args:
            message: Prompt text (may be empty when media is given)
            media: Optional single inline attachment

        Returns:
            FragmentStream yielding fragments in arrival order

        Raises:
            AssistantError: On a failure detected before streaming starts
        """

    @abstractmethod
    async def generate_structured(self, prompt: str, schema: type[SchemaT]) -> SchemaT:
        """One-shot generation constrained to a JSON schema.

        Runs outside the chat session, so it does not add to its history.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""

    async def __aenter__(self) -> "ChatBackend":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        try:
            await self.close()
        except RuntimeError as e:
            # Suppress harmless cleanup errors from httpx/anyio
            if "Event loop is closed" not in str(e):
                raise
