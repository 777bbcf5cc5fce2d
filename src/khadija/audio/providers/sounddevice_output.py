"""Decoded audio playback through sounddevice.

soundfile decodes the encoded bytes into a float32 frame array; playback
runs on PortAudio's callback thread, and completion is marshalled back to
the event loop.
"""

import asyncio
import io
import logging
import threading
from collections.abc import Callable

import numpy as np
import sounddevice as sd
import soundfile as sf

from ..base import AudioOutput, HandleKind, PlaybackHandle

logger = logging.getLogger(__name__)


class DecodedAudioBuffer(PlaybackHandle):
    """A decoded buffer played once through an output stream."""

    kind = HandleKind.BUFFER

    def __init__(self, frames: np.ndarray, samplerate: int, device: int | str | None = None):
        self._frames = frames
        self._samplerate = samplerate
        self._device = device
        self._position = 0
        self._stream: sd.OutputStream | None = None
        self._stopped = threading.Event()

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return len(self._frames) / self._samplerate if self._samplerate else 0.0

    def start(self, on_end: Callable[[], None], on_error: Callable[[Exception], None]) -> None:
        loop = asyncio.get_running_loop()

        def callback(outdata, frames, time, status):
            chunk = self._frames[self._position:self._position + frames]
            outdata[:len(chunk)] = chunk
            if len(chunk) < frames:
                outdata[len(chunk):] = 0
                raise sd.CallbackStop
            self._position += frames

        def finished():
            if not self._stopped.is_set():
                loop.call_soon_threadsafe(on_end)

        try:
            self._stream = sd.OutputStream(
                samplerate=self._samplerate,
                channels=self._frames.shape[1],
                dtype="float32",
                device=self._device,
                callback=callback,
                finished_callback=finished,
            )
            self._stream.start()
        except sd.PortAudioError as exc:
            self._stopped.set()
            on_error(exc)

    def stop(self) -> None:
        self._stopped.set()
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.abort()
            stream.close()


class SoundDeviceOutput(AudioOutput):
    """Decodes audio bytes with soundfile for sounddevice playback."""

    def __init__(self, device: int | str | None = None):
        self._device = device

    def decode(self, audio: bytes) -> DecodedAudioBuffer:
        frames, samplerate = sf.read(io.BytesIO(audio), dtype="float32", always_2d=True)
        logger.debug("Decoded %d frames at %d Hz", len(frames), samplerate)
        return DecodedAudioBuffer(frames, samplerate, device=self._device)
