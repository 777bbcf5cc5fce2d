"""Khadija: a chat assistant for the educational resources of Senprof.

Answers are streamed from Gemini with Google Search grounding, rendered
from Markdown, and stripped of every link outside the approved domain.
Answers can be read aloud through Google Cloud TTS or a local engine.
"""

from .assistant import Assistant
from .config import APPROVED_DOMAIN, AssistantConfig, Settings, UserRole
from .errors import AssistantError, ErrorKind, classify_error

__version__ = "0.1.0"

__all__ = [
    "APPROVED_DOMAIN",
    "Assistant",
    "AssistantConfig",
    "AssistantError",
    "ErrorKind",
    "Settings",
    "UserRole",
    "classify_error",
    "__version__",
]
