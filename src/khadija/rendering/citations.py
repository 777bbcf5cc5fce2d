"""Citation collection and the sources block rendered under an answer."""

import html
from collections.abc import Iterable, Iterator

from .domain import ApprovedDomain


class CitationSet:
    """Insertion-ordered set of approved citation URLs.

    URLs outside the approved domain are refused; repeats are no-ops so
    the order of first occurrence is preserved.
    """

    def __init__(self, domain: ApprovedDomain, urls: Iterable[str] = ()):
        self._domain = domain
        self._urls: dict[str, None] = {}
        for url in urls:
            self.add(url)

    def add(self, url: str) -> bool:
        """Admit a candidate URL.

        Returns:
            True if the URL was newly added
        """
        if not self._domain.matches(url) or url in self._urls:
            return False
        self._urls[url] = None
        return True

    def update(self, urls: Iterable[str]) -> int:
        """Admit several URLs, returning how many were new."""
        return sum(1 for url in urls if self.add(url))

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)

    def __len__(self) -> int:
        return len(self._urls)

    def __bool__(self) -> bool:
        return bool(self._urls)

    def to_list(self) -> list[str]:
        return list(self._urls)


def render_sources_block(urls: Iterable[str], label: str) -> str:
    """Render the sources list appended beneath an answer."""
    items = "".join(
        f'<li><a href="{html.escape(url)}" target="_blank" rel="noopener noreferrer">'
        f"{html.escape(url, quote=False)}</a></li>"
        for url in urls
    )
    return f'<div class="sources"><strong>{html.escape(label, quote=False)}</strong><ul>{items}</ul></div>'
