"""Local speech synthesis with pyttsx3.

pyttsx3 drives the platform engine (SAPI5, NSSpeechSynthesizer, eSpeak).
``runAndWait`` blocks, so each utterance runs in a worker thread and its
completion is marshalled back to the event loop.
"""

import asyncio
import logging
import threading
from collections.abc import Callable

import pyttsx3

from ..base import HandleKind, LocalSpeechEngine, PlaybackHandle, Voice

logger = logging.getLogger(__name__)

# pyttsx3 rate is in words per minute
BASE_RATE_WPM = 180


def _voice_language(voice) -> str:
    """Normalize pyttsx3 voice languages (eSpeak reports b'\\x05fr')."""
    languages = getattr(voice, "languages", None) or []
    for language in languages:
        if isinstance(language, bytes):
            language = language.decode("utf-8", errors="ignore").lstrip("\x00\x01\x02\x03\x04\x05")
        if language:
            return str(language).replace("_", "-")
    return ""


class SynthesizedUtterance(PlaybackHandle):
    """One utterance spoken by the shared pyttsx3 engine."""

    kind = HandleKind.UTTERANCE

    def __init__(self, engine: "Pyttsx3SpeechEngine", text: str, voice: Voice | None, rate: float):
        self._engine = engine
        self.text = text
        self.voice = voice
        self.rate = rate
        self._stopped = threading.Event()

    def start(self, on_end: Callable[[], None], on_error: Callable[[Exception], None]) -> None:
        loop = asyncio.get_running_loop()

        def run():
            try:
                self._engine.speak_blocking(self)
            except Exception as exc:
                if not self._stopped.is_set():
                    loop.call_soon_threadsafe(on_error, exc)
                return
            if not self._stopped.is_set():
                loop.call_soon_threadsafe(on_end)

        threading.Thread(target=run, name="tts-pyttsx3", daemon=True).start()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def stop(self) -> None:
        if not self._stopped.is_set():
            self._stopped.set()
            self._engine.cancel()


class Pyttsx3SpeechEngine(LocalSpeechEngine):
    """LocalSpeechEngine backed by pyttsx3.

    The platform engine has no catalogue-change notification, so
    ``refresh_voices`` re-enumerates and notifies subscribers on change.
    Pitch is accepted for interface parity; pyttsx3 exposes no pitch
    property.
    """

    def __init__(self, driver_name: str | None = None):
        self._engine = pyttsx3.init(driver_name)
        self._lock = threading.Lock()
        self._listeners: list[Callable[[list[Voice]], None]] = []
        self._voices = self._enumerate()

    def _enumerate(self) -> list[Voice]:
        return [
            Voice(id=voice.id, name=voice.name or voice.id, lang=_voice_language(voice))
            for voice in self._engine.getProperty("voices") or []
        ]

    def voices(self) -> list[Voice]:
        return list(self._voices)

    def on_voices_changed(self, callback: Callable[[list[Voice]], None]) -> None:
        self._listeners.append(callback)

    def refresh_voices(self) -> bool:
        """Re-enumerate platform voices and notify subscribers on change."""
        voices = self._enumerate()
        if voices == self._voices:
            return False
        self._voices = voices
        for listener in list(self._listeners):
            listener(self.voices())
        return True

    def create_utterance(
        self,
        text: str,
        voice: Voice | None,
        pitch: float = 1.0,
        rate: float = 1.0,
    ) -> SynthesizedUtterance:
        return SynthesizedUtterance(self, text, voice, rate)

    def speak_blocking(self, utterance: SynthesizedUtterance) -> None:
        """Speak on the calling thread until done or cancelled."""
        with self._lock:
            if utterance.stopped:
                # Stopped while waiting for the previous utterance
                return
            if utterance.voice is not None:
                self._engine.setProperty("voice", utterance.voice.id)
            self._engine.setProperty("rate", int(BASE_RATE_WPM * utterance.rate))
            self._engine.say(utterance.text)
            self._engine.runAndWait()

    def cancel(self) -> None:
        self._engine.stop()
