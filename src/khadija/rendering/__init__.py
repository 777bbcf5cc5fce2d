"""Rendering of assistant answers: Markdown, link provenance and citations."""

from .citations import CitationSet, render_sources_block
from .domain import ApprovedDomain
from .markdown import TYPING_CURSOR, MarkdownRenderer
from .sanitizer import LinkSanitizer, extract_speech_text, html_to_text, parse_fragment

__all__ = [
    "ApprovedDomain",
    "CitationSet",
    "LinkSanitizer",
    "MarkdownRenderer",
    "TYPING_CURSOR",
    "extract_speech_text",
    "html_to_text",
    "parse_fragment",
    "render_sources_block",
]
