"""Data models exchanged with the chat backend."""

from collections.abc import AsyncIterator
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class Fragment(BaseModel):
    """One incremental chunk of a streamed answer.

    ``citations`` holds the candidate grounding URLs the backend attached
    to this chunk, unfiltered.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Text appended by this chunk")
    citations: tuple[str, ...] = Field(default=(), description="Grounding URLs carried by this chunk")


class FragmentStream:
    """Ordered, finite-or-erroring sequence of fragments for one answer.

    Acts as an async iterator; usage metadata reported by the backend at
    the end of the stream is available afterwards via ``usage``.
    """

    def __init__(self, async_iter: AsyncIterator[Fragment]):
        self._iter = async_iter
        self._usage: dict[str, Any] | None = None

    @property
    def usage(self) -> dict[str, Any] | None:
        """Token usage (available after iteration completes)."""
        return self._usage

    def set_usage(self, usage: dict[str, Any]) -> None:
        self._usage = usage

    def __aiter__(self) -> "FragmentStream":
        return self

    async def __anext__(self) -> Fragment:
        return await self._iter.__anext__()


class AttachedMedia(BaseModel):
    """A single inline media attachment for an outgoing message."""

    model_config = ConfigDict(frozen=True)

    data: str = Field(description="Base64-encoded bytes")
    mime_type: str = Field(description="MIME type, e.g. image/png")
    preview: str = Field(default="", description="data: URL used to preview the attachment")


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "ai"


class ChatTurn(BaseModel):
    """One message in the conversation log. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    sender: Sender
    content: str = Field(description="Rendered HTML content")
    is_error: bool = Field(default=False, description="Assistant-styled error message")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("timestamp")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format."""
        return value.isoformat()


class SuggestionList(BaseModel):
    """Structured response for follow-up question suggestions."""

    suggestions: list[str] = Field(default_factory=list)


class QuizQuestion(BaseModel):
    """A multiple-choice question about a resource."""

    question: str
    options: list[str]
    correct_answer_index: int = Field(ge=0)

    def is_correct(self, index: int) -> bool:
        return index == self.correct_answer_index


class Quiz(BaseModel):
    """Structured response for quiz generation."""

    quiz: list[QuizQuestion] = Field(default_factory=list)
