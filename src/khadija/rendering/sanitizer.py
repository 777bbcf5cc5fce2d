"""Link sanitization over a rendered message tree.

The message is held as a BeautifulSoup tree, which gives the operations
the sanitizer needs: enumerate text nodes, replace a node, enumerate
anchors and read their href. Two passes run in order:

1. linkify: bare http(s) URLs in text outside ``<a>``/``<button>`` become
   anchors whose visible text is the URL itself;
2. domain filter: every anchor whose href is not under the approved
   domain is replaced by its visible text, the href discarded.
"""

import re

from bs4 import BeautifulSoup, NavigableString, Tag

from .domain import ApprovedDomain

URL_PATTERN = re.compile(r"""https?://[^\s`()<>"]+""")

# Text inside these elements is never linkified
PROTECTED_TAGS = ["a", "button"]

# Blocks that are controls or metadata rather than answer text
NON_SPOKEN_CLASSES = ("interactive-elements", "resource-actions", "action-result-container", "sources")

_factory = BeautifulSoup("", "html.parser")


def parse_fragment(markup: str) -> BeautifulSoup:
    """Parse an HTML fragment into a mutable tree."""
    return BeautifulSoup(markup, "html.parser")


def _new_link(url: str) -> Tag:
    link = _factory.new_tag("a", href=url, target="_blank", rel="noopener noreferrer")
    link.string = url
    return link


class LinkSanitizer:
    """Enforces that only approved-domain links survive in a message."""

    def __init__(self, domain: ApprovedDomain | None = None):
        self._domain = domain or ApprovedDomain()

    @property
    def domain(self) -> ApprovedDomain:
        return self._domain

    def linkify(self, root: Tag) -> int:
        """Convert bare URLs in unprotected text nodes into anchors.

        Text nodes are collected before any replacement so the tree is not
        mutated while it is being walked. Text already inside an anchor or
        button is skipped, which makes the pass idempotent.

        Returns:
            Number of anchors created
        """
        candidates = [
            node for node in root.find_all(string=True)
            if type(node) is NavigableString and node.find_parent(PROTECTED_TAGS) is None
        ]

        created = 0
        for node in candidates:
            text = str(node)
            matches = list(URL_PATTERN.finditer(text))
            if not matches:
                continue

            pieces: list[NavigableString | Tag] = []
            last = 0
            for match in matches:
                if match.start() > last:
                    pieces.append(NavigableString(text[last:match.start()]))
                pieces.append(_new_link(match.group(0)))
                last = match.end()
            if last < len(text):
                pieces.append(NavigableString(text[last:]))

            node.replace_with(*pieces)
            created += len(matches)
        return created

    def filter_links(self, root: Tag) -> int:
        """Demote every anchor outside the approved domain to plain text.

        Anchors without an href are demoted too, so every anchor left in
        the tree carries an approved href.

        Returns:
            Number of anchors removed
        """
        removed = 0
        for link in list(root.find_all("a")):
            href = link.get("href")
            if isinstance(href, list):
                href = " ".join(href)
            if self._domain.matches(href):
                continue
            # The href itself is never kept, not even as text
            link.replace_with(NavigableString(link.get_text()))
            removed += 1
        return removed

    def sanitize(self, root: Tag) -> Tag:
        """Run both passes, in order, on a tree in place."""
        self.linkify(root)
        self.filter_links(root)
        return root

    def sanitize_html(self, markup: str) -> str:
        """Sanitize an HTML fragment and return the resulting markup."""
        tree = parse_fragment(markup)
        self.sanitize(tree)
        return str(tree)


def extract_speech_text(markup: str) -> str:
    """Return the readable text of a message, without controls or sources."""
    tree = parse_fragment(markup)
    for class_name in NON_SPOKEN_CLASSES:
        for element in tree.find_all(class_=class_name):
            element.decompose()
    return tree.get_text().strip()


def html_to_text(markup: str) -> str:
    """Strip tags from stored markup, as used by transcripts."""
    return parse_fragment(markup).get_text()
