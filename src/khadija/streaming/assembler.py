"""Response stream assembly.

Consumes the fragments of one streamed answer strictly in arrival order,
re-rendering the whole accumulated text after each fragment and collecting
approved citations. On completion the final markup is sanitized and the
sources block appended; on failure the partial assembly is discarded.
"""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..errors import AssistantError
from ..llm import AttachedMedia, ChatBackend, Fragment
from ..rendering import (
    ApprovedDomain,
    CitationSet,
    LinkSanitizer,
    MarkdownRenderer,
    render_sources_block,
)

logger = logging.getLogger(__name__)


class StreamingAssembly:
    """Mutable state of one in-flight answer.

    Lives only for the duration of one stream; never shared between
    streams.
    """

    def __init__(self, domain: ApprovedDomain):
        self.accumulated_text = ""
        self.citations = CitationSet(domain)
        self.rendered_markup = ""
        self.is_final = False
        self.fragment_count = 0

    def apply(self, fragment: Fragment, renderer: MarkdownRenderer) -> str:
        """Fold one fragment in and re-render the partial answer.

        Returns:
            Replacement markup for the whole message (with typing cursor)
        """
        self.accumulated_text += fragment.text
        self.citations.update(fragment.citations)
        self.rendered_markup = renderer.render_partial(self.accumulated_text)
        self.fragment_count += 1
        return self.rendered_markup


class AssembledMessage(BaseModel):
    """Final, sanitized answer produced from a completed stream."""

    model_config = ConfigDict(frozen=True)

    markup: str = Field(description="Sanitized HTML, including the sources block if any")
    text: str = Field(description="Raw accumulated Markdown text")
    citations: list[str] = Field(default_factory=list, description="Approved citations, first-seen order")
    usage: dict[str, Any] | None = Field(default=None, description="Token usage reported by the backend")


UpdateCallback = Callable[[StreamingAssembly], None]


class _ViewWriter:
    """Forwards partial renders to a view until the view goes away.

    A failing callback means the element it writes to was closed or
    replaced; the stream is still drained, but nothing more is written.
    """

    def __init__(self, callback: UpdateCallback | None):
        self._callback = callback
        self.disposed = callback is None

    def write(self, assembly: StreamingAssembly) -> None:
        if self.disposed:
            return
        try:
            self._callback(assembly)
        except Exception:
            logger.warning("Stream view rejected an update; ignoring further fragments", exc_info=True)
            self.disposed = True


class ResponseStreamAssembler:
    """Turns one chat backend stream into a sanitized answer.

    Hidden design decisions:
    - Whole-text re-render on each fragment (Markdown spans may be split)
    - Citation admission against the approved domain
    - Sanitization and sources block only on the final render
    """

    def __init__(
        self,
        backend: ChatBackend,
        domain: ApprovedDomain | None = None,
        renderer: MarkdownRenderer | None = None,
        sanitizer: LinkSanitizer | None = None,
    ):
        self._backend = backend
        self._domain = domain or ApprovedDomain()
        self._renderer = renderer or MarkdownRenderer()
        self._sanitizer = sanitizer or LinkSanitizer(self._domain)

    async def assemble(
        self,
        message: str,
        media: AttachedMedia | None = None,
        on_update: UpdateCallback | None = None,
        sources_label: str = "Source(s) :",
    ) -> AssembledMessage:
        """Stream one answer and return it once complete.

        Args:
            message: Prompt sent to the live chat session
            media: Optional inline attachment
            on_update: Receives the assembly after each fragment
            sources_label: Heading of the sources block

        Returns:
            The final sanitized message

        Raises:
            AssistantError: Classified failure; no partial text is returned
        """
        assembly = StreamingAssembly(self._domain)
        view = _ViewWriter(on_update)

        try:
            stream = await self._backend.send_message_stream(message, media)
            async for fragment in stream:
                assembly.apply(fragment, self._renderer)
                view.write(assembly)
        except Exception as exc:
            error = AssistantError.from_exception(exc)
            logger.log(
                logging.WARNING if error.is_retryable() else logging.ERROR,
                "Stream aborted after %d fragments (%s): %s",
                assembly.fragment_count, error.kind.value, exc,
            )
            if error is exc:
                raise
            raise error from exc

        logger.debug("Stream complete: %d fragments, usage %s", assembly.fragment_count, stream.usage)
        return self.finalize(assembly, sources_label, usage=stream.usage)

    def finalize(
        self, assembly: StreamingAssembly, sources_label: str, usage: dict[str, Any] | None = None
    ) -> AssembledMessage:
        """Final render without cursor, sanitize, then append sources."""
        markup = self._sanitizer.sanitize_html(self._renderer.render(assembly.accumulated_text))
        citations = assembly.citations.to_list()
        if citations:
            markup += render_sources_block(citations, sources_label)

        assembly.rendered_markup = markup
        assembly.is_final = True
        return AssembledMessage(
            markup=markup, text=assembly.accumulated_text, citations=citations, usage=usage
        )
