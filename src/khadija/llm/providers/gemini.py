"""Google Gemini chat backend.

Uses the official Google GenAI SDK for async streaming chat with Google
Search grounding.
Reference: https://github.com/googleapis/python-genai
"""

import base64
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from google import genai
from google.genai import types

from ...errors import ContentBlockedError
from ..base import ChatBackend, SchemaT
from ..models import AttachedMedia, Fragment, FragmentStream

logger = logging.getLogger(__name__)

# Finish reasons that mean the answer was withheld by a safety filter
BLOCKING_FINISH_REASONS = frozenset({
    "SAFETY",
    "BLOCKLIST",
    "PROHIBITED_CONTENT",
    "SPII",
    "IMAGE_SAFETY",
})


def _reason_name(reason: Any) -> str:
    return getattr(reason, "name", None) or str(reason)


class GeminiChatBackend(ChatBackend):
    """Google Gemini chat backend.

    Hidden design decisions:
    - Google GenAI client initialization
    - Chat session with the google_search grounding tool
    - Prompt and inline media conversion to ``types.Part``
    - Grounding URL extraction from ``grounding_metadata``
    - Safety blocks surfaced as ContentBlockedError
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        grounding: bool = True,
        **client_kwargs: Any
    ):
        """Initialize Gemini backend.

        Args:
            api_key: Google AI API key
            model: Model used for chat and structured generation
            grounding: Enable Google Search grounding in chat sessions
            **client_kwargs: Additional kwargs for Client
        """
        self._model = model
        self._grounding = grounding
        self._client = genai.Client(api_key=api_key, **client_kwargs)
        self._chat = None

    @property
    def model(self) -> str:
        """Get the model name."""
        return self._model

    def start_session(self, system_instruction: str) -> None:
        """Create a fresh chat session."""
        tools = [types.Tool(google_search=types.GoogleSearch())] if self._grounding else None
        config = types.GenerateContentConfig(
            system_instruction=system_instruction or None,
            tools=tools,
        )
        self._chat = self._client.aio.chats.create(model=self._model, config=config)
        logger.debug("Started Gemini chat session (model=%s)", self._model)

    def _build_parts(self, message: str, media: AttachedMedia | None) -> list[types.Part]:
        parts = []
        if message:
            parts.append(types.Part.from_text(text=message))
        if media is not None:
            parts.append(types.Part.from_bytes(
                data=base64.b64decode(media.data),
                mime_type=media.mime_type,
            ))
        return parts

    def _to_fragment(self, chunk: Any) -> Fragment:
        """Convert one streamed response chunk into a Fragment.

        Raises:
            ContentBlockedError: If the prompt or the candidate was blocked
        """
        feedback = getattr(chunk, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise ContentBlockedError(
                f"Prompt blocked by safety filter: {_reason_name(feedback.block_reason)}"
            )

        texts: list[str] = []
        citations: list[str] = []
        candidates = getattr(chunk, "candidates", None) or []
        if candidates:
            candidate = candidates[0]
            reason = getattr(candidate, "finish_reason", None)
            if reason is not None and _reason_name(reason) in BLOCKING_FINISH_REASONS:
                raise ContentBlockedError(
                    f"Response blocked by safety filter: {_reason_name(reason)}"
                )

            content = getattr(candidate, "content", None)
            if content is not None and content.parts:
                texts = [
                    part.text for part in content.parts
                    if getattr(part, "text", None) and not getattr(part, "thought", False)
                ]

            metadata = getattr(candidate, "grounding_metadata", None)
            if metadata is not None and metadata.grounding_chunks:
                for grounding_chunk in metadata.grounding_chunks:
                    web = getattr(grounding_chunk, "web", None)
                    if web is not None and web.uri:
                        citations.append(web.uri)

        return Fragment(text="".join(texts), citations=tuple(citations))

    async def send_message_stream(
        self,
        message: str,
        media: AttachedMedia | None = None,
    ) -> FragmentStream:
        """Send a message in the chat session and stream fragments."""
        if self._chat is None:
            self.start_session("")

        parts = self._build_parts(message, media)
        # Each stream reports usage to its own wrapper; streams may overlap
        response = FragmentStream(
            self._stream_generator(parts, lambda usage: response.set_usage(usage))
        )
        return response

    async def _stream_generator(
        self,
        parts: list[types.Part],
        on_usage: Callable[[dict[str, int]], None],
    ) -> AsyncIterator[Fragment]:
        """Internal generator that yields fragments and captures usage."""
        usage = None
        stream = await self._chat.send_message_stream(parts)
        async for chunk in stream:
            if chunk.usage_metadata:
                usage = {
                    "prompt_tokens": chunk.usage_metadata.prompt_token_count or 0,
                    "completion_tokens": chunk.usage_metadata.candidates_token_count or 0,
                    "total_tokens": chunk.usage_metadata.total_token_count or 0,
                }

            fragment = self._to_fragment(chunk)
            if fragment.text or fragment.citations:
                yield fragment

        if usage:
            on_usage(usage)

    async def generate_structured(self, prompt: str, schema: type[SchemaT]) -> SchemaT:
        """Generate JSON matching a pydantic schema."""
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )
        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=prompt,
            config=config,
        )
        parsed = getattr(response, "parsed", None)
        if isinstance(parsed, schema):
            return parsed
        return schema.model_validate_json(response.text or "{}")

    async def close(self) -> None:
        """Close the Gemini client.

        Note: The Google GenAI client doesn't require explicit closing,
        but we implement this for interface consistency.
        """
        self._chat = None
