"""Repositories for the blobs the assistant persists.

Each repository keeps an in-memory copy as the source of truth and writes
it through to a KeyValueStore. When the store fails the repository logs a
warning and keeps working from memory for the rest of the session.
"""

import json
import logging

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from ..config import FAVORITES_KEY, HISTORY_KEY, MAX_HISTORY_MESSAGES, SETTINGS_KEY, Settings
from ..errors import StorageError
from ..llm.models import ChatTurn, Sender
from .base import KeyValueStore

logger = logging.getLogger(__name__)

_TURNS = TypeAdapter(list[ChatTurn])


class _BlobRepository:
    """Shared load/save plumbing for one key of a KeyValueStore."""

    def __init__(self, store: KeyValueStore, key: str):
        self._store = store
        self._key = key
        self._persistent = True

    @property
    def persistent(self) -> bool:
        """False once the store failed and the repository went memory-only."""
        return self._persistent

    async def _read(self) -> str | None:
        if not self._persistent:
            return None
        try:
            return await self._store.get(self._key)
        except StorageError as e:
            self._degrade("read", e)
            return None

    async def _write(self, value: str) -> None:
        if not self._persistent:
            return
        try:
            await self._store.set(self._key, value)
        except StorageError as e:
            self._degrade("write", e)

    async def _delete(self) -> None:
        if not self._persistent:
            return
        try:
            await self._store.remove(self._key)
        except StorageError as e:
            self._degrade("remove", e)

    def _degrade(self, action: str, error: Exception) -> None:
        logger.warning("Could not %s %s, continuing in memory only: %s", action, self._key, error)
        self._persistent = False


class ChatHistory(_BlobRepository):
    """Append-only conversation log capped to the most recent turns."""

    def __init__(
        self,
        store: KeyValueStore,
        limit: int = MAX_HISTORY_MESSAGES,
        key: str = HISTORY_KEY,
    ):
        super().__init__(store, key)
        self._limit = limit
        self._turns: list[ChatTurn] = []

    @property
    def turns(self) -> tuple[ChatTurn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    async def load(self, welcome: str | None = None) -> tuple[ChatTurn, ...]:
        """Load the stored log; seed the welcome turn when there is none.

        A corrupt blob is discarded with a warning.
        """
        raw = await self._read()
        self._turns = []
        if raw:
            try:
                self._turns = _TURNS.validate_json(raw)[-self._limit:]
            except ValidationError as e:
                logger.warning("Discarding unreadable chat history: %s", e)
        if not self._turns and welcome:
            self._turns.append(ChatTurn(sender=Sender.ASSISTANT, content=welcome))
        return self.turns

    async def append(self, turn: ChatTurn) -> None:
        self._turns.append(turn)
        if len(self._turns) > self._limit:
            del self._turns[: len(self._turns) - self._limit]
        await self.save()

    async def save(self) -> None:
        await self._write(_TURNS.dump_json(self._turns).decode("utf-8"))

    async def clear(self, welcome: str | None = None) -> None:
        """Forget every turn, then seed the welcome turn if given.

        The welcome turn is kept in memory only, like a fresh start.
        """
        self._turns = []
        await self._delete()
        if welcome:
            self._turns.append(ChatTurn(sender=Sender.ASSISTANT, content=welcome))


class SettingsRepository(_BlobRepository):
    """Loads and saves user Settings with merge-over-defaults semantics."""

    def __init__(self, store: KeyValueStore, key: str = SETTINGS_KEY):
        super().__init__(store, key)
        self._settings = Settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    async def load(self) -> Settings:
        raw = await self._read()
        if not raw:
            self._settings = Settings()
            return self._settings
        try:
            stored = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Discarding unreadable settings: %s", e)
            stored = {}
        if not isinstance(stored, dict):
            stored = {}
        self._settings = _merge_settings(stored)
        return self._settings

    async def save(self, settings: Settings) -> None:
        self._settings = settings
        await self._write(settings.model_dump_json(by_alias=True))


def _merge_settings(stored: dict) -> Settings:
    """Validate stored values, dropping the ones that no longer validate."""
    values = dict(stored)
    while True:
        try:
            return Settings.model_validate(values)
        except ValidationError as e:
            invalid = {err["loc"][0] for err in e.errors() if err["loc"]}
            invalid &= values.keys()
            if not invalid:
                logger.warning("Discarding unreadable settings: %s", e)
                return Settings()
            logger.warning("Resetting invalid settings to defaults: %s", ", ".join(sorted(map(str, invalid))))
            for name in invalid:
                values.pop(name)


class Favorite(BaseModel):
    """A bookmarked resource."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str


_FAVORITES = TypeAdapter(list[Favorite])


class FavoritesRepository(_BlobRepository):
    """Bookmarked resources, unique by URL, in insertion order."""

    def __init__(self, store: KeyValueStore, key: str = FAVORITES_KEY):
        super().__init__(store, key)
        self._favorites: list[Favorite] = []

    async def load(self) -> list[Favorite]:
        raw = await self._read()
        self._favorites = []
        if raw:
            try:
                self._favorites = _FAVORITES.validate_json(raw)
            except ValidationError as e:
                logger.warning("Discarding unreadable favorites: %s", e)
        return self.entries()

    def entries(self) -> list[Favorite]:
        return list(self._favorites)

    def __contains__(self, url: object) -> bool:
        return any(fav.url == url for fav in self._favorites)

    async def toggle(self, url: str, title: str | None = None) -> bool:
        """Add the URL if absent, remove it otherwise.

        Returns:
            True if the URL is bookmarked after the call
        """
        if url in self:
            await self.remove(url)
            return False
        self._favorites.append(Favorite(url=url, title=title or url))
        await self._save()
        return True

    async def remove(self, url: str) -> None:
        self._favorites = [fav for fav in self._favorites if fav.url != url]
        await self._save()

    async def _save(self) -> None:
        await self._write(_FAVORITES.dump_json(self._favorites).decode("utf-8"))
