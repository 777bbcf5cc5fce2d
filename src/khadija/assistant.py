"""The assistant: one object wiring chat, rendering, audio and persistence.

Front ends (the CLI, tests) drive the assistant through this class and
never touch the backend, the store or the audio session directly.
"""

import html
import logging
from typing import Any

from .actions import QuizAttempt, create_quiz, summarize
from .attachments import AttachmentSlot
from .audio import AudioSessionManager, PlaybackControl, TTSBackendSelector
from .config import AssistantConfig, Settings
from .errors import AssistantError, StorageError
from .i18n import error_message, translate
from .llm import ChatBackend, ChatTurn, Sender
from .prompts import get_system_instruction, site_query
from .rendering import ApprovedDomain, extract_speech_text, parse_fragment
from .storage import (
    ChatHistory,
    FavoritesRepository,
    InMemoryStore,
    KeyValueStore,
    SettingsRepository,
)
from .streaming import AssembledMessage, ResponseStreamAssembler, UpdateCallback
from .suggestions import SuggestionGenerator, SuggestionRaceGuard, SuggestionView
from .transcript import build_transcript

logger = logging.getLogger(__name__)

# Settings whose change alters the system instruction
_PROFILE_FIELDS = ("user_role", "user_level")


class Assistant:
    """Chat assistant restricted to resources of one approved domain.

    Example:
        assistant = Assistant(backend, store, tts=selector)
        await assistant.start()
        turn = await assistant.submit("exercices de fractions CM2")
    """

    def __init__(
        self,
        backend: ChatBackend,
        store: KeyValueStore | None = None,
        tts: TTSBackendSelector | None = None,
        config: AssistantConfig | None = None,
        suggestion_view: SuggestionView | None = None,
    ):
        self.config = config or AssistantConfig()
        self.domain = ApprovedDomain(self.config.approved_domain)
        self.backend = backend
        self.attachments = AttachmentSlot()
        self.assembler = ResponseStreamAssembler(backend, self.domain)
        self.tts = tts
        self.audio = AudioSessionManager(tts.synthesize) if tts else None
        self.suggestions = (
            SuggestionRaceGuard(SuggestionGenerator(backend, lambda: self.settings), suggestion_view)
            if suggestion_view
            else None
        )
        self._loading = False
        self._bind_store(store or InMemoryStore())

    def _bind_store(self, store: KeyValueStore) -> None:
        self.store = store
        self.history = ChatHistory(store)
        self.settings_repository = SettingsRepository(store)
        self.favorites = FavoritesRepository(store)

    @property
    def settings(self) -> Settings:
        return self.settings_repository.settings

    @property
    def lang(self) -> str:
        return self.settings.ui_lang

    @property
    def loading(self) -> bool:
        """True while an answer is being streamed."""
        return self._loading

    async def start(self) -> None:
        """Open the store, restore state and start the chat session."""
        try:
            await self.store.connect()
        except StorageError as e:
            logger.warning("Store unavailable, history will not be kept: %s", e)
            self._bind_store(InMemoryStore())

        await self.settings_repository.load()
        await self.favorites.load()
        await self.history.load(welcome=translate("welcome", self.lang))
        self._restart_session()

        if self.tts is not None:
            await self.tts.initialize()

    async def close(self) -> None:
        if self.audio is not None:
            self.audio.stop()
        if self.tts is not None:
            await self.tts.close()
        await self.backend.close()
        await self.store.disconnect()

    def _restart_session(self) -> None:
        self.backend.start_session(get_system_instruction(self.settings, self.domain.domain))

    async def submit(self, text: str, on_update: UpdateCallback | None = None) -> ChatTurn | None:
        """Send a user message and return the assistant's turn.

        The pending attachment, if any, goes with the message. A failed
        stream yields an error turn instead of raising.

        Returns:
            The assistant turn, or None when there was nothing to send
        """
        text = text.strip()
        media = self.attachments.take()
        if not text and media is None:
            return None

        if self.audio is not None:
            self.audio.stop()

        user_markup = html.escape(text)
        if media is not None:
            user_markup += (
                f'<br><img src="{media.preview}" class="user-image" '
                f'alt="Image envoyée par l\'utilisateur">'
            )
        await self.history.append(ChatTurn(sender=Sender.USER, content=user_markup))

        self._loading = True
        try:
            message = site_query(text, self.domain.domain) if text else ""
            result = await self.assembler.assemble(
                message, media, on_update=on_update, sources_label=translate("sources", self.lang)
            )
            turn = ChatTurn(sender=Sender.ASSISTANT, content=result.markup)
        except AssistantError as e:
            turn = ChatTurn(
                sender=Sender.ASSISTANT,
                content=error_message(e.kind, self.lang),
                is_error=True,
            )
        finally:
            self._loading = False

        await self.history.append(turn)
        return turn

    async def speak(self, markup: str, control: PlaybackControl) -> bool:
        """Read a message aloud, or stop it if control is already playing.

        Returns:
            True if playback started
        """
        if self.audio is None:
            return False
        return await self.audio.play(extract_speech_text(markup), control)

    def stop_audio(self) -> None:
        if self.audio is not None:
            self.audio.stop()

    async def refresh_suggestions(self) -> list[str] | None:
        if self.suggestions is None:
            return None
        return await self.suggestions.refresh(len(self.history))

    async def update_settings(self, **changes: Any) -> Settings:
        """Apply and persist setting changes.

        Changing the role or level restarts the chat session so the new
        profile reaches the system instruction.

        Raises:
            pydantic.ValidationError: If a value is invalid
        """
        current = self.settings
        updated = Settings.model_validate({**current.model_dump(), **changes})
        await self.settings_repository.save(updated)
        if any(getattr(current, f) != getattr(updated, f) for f in _PROFILE_FIELDS):
            logger.info("Profile changed, restarting chat session")
            self._restart_session()
        return updated

    def resource_links(self, markup: str) -> list[tuple[str, str]]:
        """Approved links of a message as (url, title), in document order."""
        links = []
        for anchor in parse_fragment(markup).find_all("a", href=True):
            url = anchor["href"]
            if self.domain.matches(url):
                links.append((url, anchor.get_text() or url))
        return links

    async def toggle_favorite(self, url: str, title: str | None = None) -> bool:
        return await self.favorites.toggle(url, title)

    async def summarize(self, url: str, on_update: UpdateCallback | None = None) -> AssembledMessage:
        """Summarize a resource.

        Raises:
            AssistantError: Classified failure
        """
        self.stop_audio()
        return await summarize(
            self.assembler, self.settings, url, on_update, sources_label=translate("sources", self.lang)
        )

    async def create_quiz(self, url: str) -> QuizAttempt:
        """Generate a quiz about a resource.

        Raises:
            AssistantError: Classified failure
        """
        self.stop_audio()
        return QuizAttempt(await create_quiz(self.backend, url))

    async def clear_history(self) -> None:
        self.stop_audio()
        await self.history.clear(welcome=translate("welcome", self.lang))

    def transcript(self) -> str:
        return build_transcript(self.history.turns, self.lang)
