"""Markdown to HTML rendering using markdown-it-py.

Hidden design decisions:
- CommonMark parser with GFM tables and strikethrough enabled
- Raw HTML in model output is escaped, never passed through
- Every rendered link opens in a new tab with noopener/noreferrer
"""

from markdown_it import MarkdownIt

# Marker appended after partial renders while a stream is in progress
TYPING_CURSOR = '<span class="typing-cursor"></span>'


def _render_link_open(self, tokens, idx, options, env):
    token = tokens[idx]
    token.attrSet("target", "_blank")
    token.attrSet("rel", "noopener noreferrer")
    return self.renderToken(tokens, idx, options, env)


class MarkdownRenderer:
    """Render Markdown text to an HTML fragment.

    Rendering is a pure function of the input text, so re-rendering the
    whole accumulated text at each fragment always yields well-formed
    markup regardless of where fragment boundaries fall.
    """

    def __init__(self):
        self._md = MarkdownIt("commonmark", {"html": False})
        self._md.enable(["table", "strikethrough"])
        self._md.add_render_rule("link_open", _render_link_open)

    def render(self, text: str) -> str:
        """Render complete Markdown text."""
        return self._md.render(text)

    def render_partial(self, text: str) -> str:
        """Render in-progress text followed by the typing cursor."""
        return self._md.render(text).strip() + TYPING_CURSOR
