"""TTS backend selection.

Probes the remote synthesis service once at startup and routes every
speak-request to it, or to the local engine when the probe failed. The
availability flag is set once: a later remote outage fails that single
request and does not switch the session to the local engine.
"""

import logging
from collections.abc import Callable

from ..config import APPROVED_LANGUAGE, Settings
from ..errors import SynthesisError
from .base import AudioOutput, LocalSpeechEngine, PlaybackHandle, RemoteSynthesizer, Voice

logger = logging.getLogger(__name__)

PROBE_TEXT = "test"


def select_voice(
    voices: list[Voice],
    preferred_name: str | None,
    ui_lang: str,
    fallback_lang: str = APPROVED_LANGUAGE,
) -> Voice | None:
    """Choose the local voice for an utterance.

    Order: the user's preferred voice if still available, else the first
    voice for the interface language, else the first voice for the
    approved written language, else None (engine default).
    """
    if preferred_name:
        for voice in voices:
            if voice.name == preferred_name:
                return voice
    for lang in (ui_lang, fallback_lang):
        if not lang:
            continue
        for voice in voices:
            if voice.lang.startswith(lang):
                return voice
    return None


class TTSBackendSelector:
    """Routes speech requests to the remote service or the local engine."""

    def __init__(
        self,
        settings: Callable[[], Settings],
        remote: RemoteSynthesizer | None = None,
        output: AudioOutput | None = None,
        local: LocalSpeechEngine | None = None,
    ):
        """Initialize the selector.

        Args:
            settings: Returns the current user settings (read per request)
            remote: Remote synthesis service, None when not configured
            output: Decoder/player for remote audio
            local: Local speech engine fallback
        """
        self._settings = settings
        self._remote = remote
        self._output = output
        self._local = local
        self._remote_available = False
        self._initialized = False
        self._voices: list[Voice] = []

    @property
    def remote_available(self) -> bool:
        return self._remote_available

    @property
    def service(self) -> str:
        """Name of the active service: 'remote' or 'local'."""
        return "remote" if self._remote_available else "local"

    @property
    def voices(self) -> list[Voice]:
        """Last known local voice catalogue."""
        return list(self._voices)

    async def initialize(self) -> bool:
        """Probe the remote service once.

        Returns:
            Whether the remote service will be used for this session
        """
        if self._initialized:
            return self._remote_available
        self._initialized = True

        if self._remote is not None and self._output is not None:
            try:
                await self._remote.synthesize(PROBE_TEXT)
                self._remote_available = True
            except Exception as exc:
                logger.warning("Remote TTS unavailable, using local engine: %s", exc)
                self._remote_available = False

        if not self._remote_available and self._local is not None:
            self._local.on_voices_changed(self._on_voices_changed)
            self._on_voices_changed(self._local.voices())

        logger.info("TTS service: %s", self.service)
        return self._remote_available

    def refresh_voices(self) -> list[Voice]:
        """Re-read the local catalogue and return it."""
        if self._local is not None:
            self._local.refresh_voices()
        return self.voices

    def _on_voices_changed(self, voices: list[Voice]) -> None:
        self._voices = list(voices)
        logger.debug("Local voice catalogue: %d voices", len(self._voices))

    async def synthesize(self, text: str) -> PlaybackHandle:
        """Produce a playback handle for text on the selected service.

        Raises:
            SynthesisError: If synthesis fails or no engine is available
        """
        settings = self._settings()

        if self._remote_available:
            audio = await self._remote.synthesize(text, rate=settings.playback_speed)
            try:
                return self._output.decode(audio)
            except Exception as exc:
                raise SynthesisError(f"Could not decode synthesized audio: {exc}") from exc

        if self._local is None:
            raise SynthesisError("No local speech engine available")

        self._local.refresh_voices()
        voice = select_voice(self._local.voices(), settings.voice_name, settings.ui_lang)
        return self._local.create_utterance(
            text,
            voice=voice,
            pitch=settings.pitch,
            rate=settings.playback_speed,
        )

    async def close(self) -> None:
        if self._remote is not None:
            await self._remote.close()
