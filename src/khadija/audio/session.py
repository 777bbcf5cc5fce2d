"""Audio session arbitration.

Owns the single process-wide playback session and guarantees at most one
sound is audible. States::

    IDLE -> REQUESTING -> PLAYING -> IDLE      (success)
    REQUESTING -> IDLE                         (failure or preemption)

Any new ``play`` tears the current session down synchronously before
proceeding; asking to play the control that is already active just stops.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from .base import ControlState, PlaybackControl, PlaybackHandle

logger = logging.getLogger(__name__)

Synthesize = Callable[[str], Awaitable[PlaybackHandle]]


class SessionState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    PLAYING = "playing"


class Continuation:
    """One-shot callback that can be disarmed.

    A cancelled continuation is a no-op, so a late "playback ended" from
    an old session cannot touch a newer one.
    """

    def __init__(self, callback: Callable[..., None]):
        self._callback: Callable[..., None] | None = callback

    @property
    def armed(self) -> bool:
        return self._callback is not None

    def cancel(self) -> None:
        self._callback = None

    def __call__(self, *args: object) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback(*args)


class AudioSessionManager:
    """Single owner of the active playback handle and its bound control."""

    def __init__(self, synthesize: Synthesize):
        """Initialize the manager.

        Args:
            synthesize: Coroutine function turning text into a playback
                handle (usually ``TTSBackendSelector.synthesize``)
        """
        self._synthesize = synthesize
        self._state = SessionState.IDLE
        self._control: PlaybackControl | None = None
        self._handle: PlaybackHandle | None = None
        self._pending: asyncio.Task | None = None
        self._completion: Continuation | None = None
        self._failure: Continuation | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_control(self) -> PlaybackControl | None:
        return self._control

    @property
    def active_handle(self) -> PlaybackHandle | None:
        return self._handle

    def is_active(self, control: PlaybackControl) -> bool:
        return self._control is control

    async def play(self, text: str, control: PlaybackControl) -> bool:
        """Toggle playback of ``text`` on ``control``.

        Returns:
            True if playback started, False on toggle-off, empty text,
            preemption or failure
        """
        was_active = self._control is control
        self.stop()
        if was_active:
            return False

        text = text.strip()
        if not text:
            return False

        self._control = control
        self._state = SessionState.REQUESTING
        self._set_control(control, ControlState.BUSY)

        request = asyncio.ensure_future(self._synthesize(text))
        self._pending = request
        try:
            handle = await request
        except asyncio.CancelledError:
            if self._pending is request:
                # The caller was cancelled, not preempted
                self.stop()
                raise
            return False
        except Exception:
            logger.error("Speech synthesis failed", exc_info=True)
            if self._pending is request:
                self.stop()
            return False

        if self._pending is not request:
            # Preempted after synthesis finished but before we resumed
            handle.stop()
            return False
        self._pending = None

        self._handle = handle
        self._completion = Continuation(self._on_complete)
        self._failure = Continuation(self._on_failure)
        self._state = SessionState.PLAYING
        self._set_control(control, ControlState.PLAYING)
        try:
            handle.start(self._completion, self._failure)
        except Exception:
            logger.error("Playback failed to start", exc_info=True)
            self.stop()
            return False
        logger.debug("Playing %s (%d chars)", handle.kind.value, len(text))
        return True

    def stop(self) -> None:
        """Tear down the current session synchronously. Safe when idle."""
        for continuation in (self._completion, self._failure):
            if continuation is not None:
                continuation.cancel()
        self._completion = None
        self._failure = None

        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()

        handle, self._handle = self._handle, None
        if handle is not None:
            try:
                handle.stop()
            except Exception:
                logger.warning("Error while stopping playback", exc_info=True)

        control, self._control = self._control, None
        if control is not None:
            self._set_control(control, ControlState.RESTING)

        self._state = SessionState.IDLE

    def _on_complete(self) -> None:
        logger.debug("Playback finished")
        self._handle = None
        self.stop()

    def _on_failure(self, exc: Exception) -> None:
        logger.error("Playback error: %s", exc)
        self.stop()

    @staticmethod
    def _set_control(control: PlaybackControl, state: ControlState) -> None:
        try:
            control.set_state(state)
        except Exception:
            logger.warning("Control rejected state %s", state.value, exc_info=True)
