from typing import Any

from .base import ChatBackend
from .providers import GeminiChatBackend


def create_chat_backend(provider: str, **config: Any) -> ChatBackend:
    """Create a chat backend instance.

    This factory function hides the instantiation logic for backends.

    Args:
        provider: Backend type ('gemini')
        **config: Backend-specific configuration
            For Gemini:
                - api_key: str (required)
                - model: str (default: 'gemini-2.5-flash')
                - grounding: bool (default: True)

    Returns:
        Initialized chat backend

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> backend = create_chat_backend(
        ...     "gemini",
        ...     api_key="...",
        ...     model="gemini-2.5-flash"
        ... )
    """
    provider_lower = provider.lower()

    if provider_lower == "gemini":
        if not config.get("api_key"):
            raise TypeError("Gemini backend requires 'api_key' in config")
        return GeminiChatBackend(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'gemini'"
    )
