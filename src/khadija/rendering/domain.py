"""Approved-domain provenance check.

Hides how a URL is decided to belong to the approved resource domain.
The comparison is a case-sensitive string prefix test against the
``https://`` and ``http://`` forms of the configured host + path prefix.
"""

from ..config import APPROVED_DOMAIN


class ApprovedDomain:
    """The single origin + path prefix that surfaced links must match."""

    def __init__(self, domain: str = APPROVED_DOMAIN):
        domain = domain.strip()
        if "://" in domain:
            raise ValueError(f"Approved domain must not include a scheme: {domain!r}")
        if not domain.endswith("/"):
            # Without the trailing slash "host.example.attacker" would pass
            domain += "/"
        self._domain = domain
        self._prefixes = (f"https://{domain}", f"http://{domain}")

    @property
    def domain(self) -> str:
        """Host + path prefix, always ending with a slash."""
        return self._domain

    @property
    def prefixes(self) -> tuple[str, str]:
        """Accepted URL prefixes (https first)."""
        return self._prefixes

    def matches(self, url: str | None) -> bool:
        """Check whether a URL is under the approved domain."""
        if not url:
            return False
        return url.startswith(self._prefixes)

    def __repr__(self) -> str:
        return f"ApprovedDomain({self._domain!r})"
