"""Error taxonomy and classification.

Every failure that reaches the user is reduced to one ErrorKind, which
selects the localized message shown in place of the failed answer.
"""

import re
from enum import Enum

import httpx


class ErrorKind(str, Enum):
    """Categories of user-visible failures."""

    NETWORK = "network"
    AUTH_CONFIG = "auth_config"
    RATE_LIMITED = "rate_limited"
    MODEL = "model"
    CONTENT_BLOCKED = "content_blocked"
    MEDIA_LOAD = "media_load"
    MIC_PERMISSION = "mic_permission"
    SPEECH_RECOGNITION = "speech_recognition"
    GENERIC = "generic"


class AssistantError(Exception):
    """Base class for assistant errors carrying a classified kind."""

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    def is_retryable(self) -> bool:
        """Transient failures the user may simply retry."""
        return self.kind in (ErrorKind.NETWORK, ErrorKind.RATE_LIMITED)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "AssistantError":
        """Wrap an arbitrary exception, classifying it."""
        if isinstance(exc, AssistantError):
            return exc
        return cls(str(exc) or type(exc).__name__, kind=classify_error(exc))


class ContentBlockedError(AssistantError):
    """The backend's safety filter blocked the prompt or the answer."""

    kind = ErrorKind.CONTENT_BLOCKED


class MediaLoadError(AssistantError):
    """An attachment could not be read."""

    kind = ErrorKind.MEDIA_LOAD


class SynthesisError(AssistantError):
    """Speech synthesis failed (remote error payload or local engine error)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.kind = classify_error(self)


class StorageError(AssistantError):
    """The persistent key-value store is unavailable."""


_NETWORK_MARKERS = ("network", "failed to fetch", "connection", "connect error", "timed out")
_AUTH_MARKERS = ("api key", "api_key", "permission_denied", "unauthenticated")
_RATE_MARKERS = ("[429]", "resource_exhausted", "rate limit")
_SAFETY_MARKERS = ("safety", "blocked")
_MODEL_MARKERS = ("[400]", "[500]", "[503]")
_STATUS_PATTERN = re.compile(r"\b(4\d\d|5\d\d)\b")


def _status_code(exc: BaseException) -> int | None:
    for attr in ("code", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def classify_error(exc: BaseException) -> ErrorKind:
    """Classify an exception by its message and status signal.

    Checks run in priority order: network, auth, rate limit, safety block,
    generic model status, then fallback generic.
    """
    if isinstance(exc, AssistantError) and exc.kind is not ErrorKind.GENERIC:
        return exc.kind

    message = (str(exc) or type(exc).__name__).lower()
    status = _status_code(exc)
    if status is None:
        match = _STATUS_PATTERN.search(message)
        status = int(match.group(1)) if match else None

    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return ErrorKind.NETWORK
    if any(marker in message for marker in _NETWORK_MARKERS):
        return ErrorKind.NETWORK
    if status in (401, 403) or any(marker in message for marker in _AUTH_MARKERS):
        return ErrorKind.AUTH_CONFIG
    if status == 429 or any(marker in message for marker in _RATE_MARKERS):
        return ErrorKind.RATE_LIMITED
    if any(marker in message for marker in _SAFETY_MARKERS):
        return ErrorKind.CONTENT_BLOCKED
    if (status is not None and 400 <= status < 600) or any(m in message for m in _MODEL_MARKERS):
        return ErrorKind.MODEL
    return ErrorKind.GENERIC
