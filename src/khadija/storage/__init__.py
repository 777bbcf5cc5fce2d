"""Key-value persistence for history, settings and favorites."""

from .base import KeyValueStore
from .factory import create_store
from .in_memory import InMemoryStore
from .repositories import ChatHistory, Favorite, FavoritesRepository, SettingsRepository

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "create_store",
    "ChatHistory",
    "SettingsRepository",
    "Favorite",
    "FavoritesRepository",
]
