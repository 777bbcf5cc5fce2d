"""Pytest configuration and shared fakes.

The fakes stand in for the network and audio devices so the assistant's
ordering and cancellation logic can be driven step by step.
"""
import asyncio
from collections.abc import Callable

import pytest

from khadija.audio import (
    AudioOutput,
    ControlState,
    HandleKind,
    LocalSpeechEngine,
    PlaybackControl,
    PlaybackHandle,
    RemoteSynthesizer,
    Voice,
)
from khadija.errors import SynthesisError
from khadija.llm import ChatBackend, Fragment, FragmentStream
from khadija.rendering import ApprovedDomain
from khadija.suggestions import SuggestionView

TEST_DOMAIN = "approved.example/"


class FakeChatBackend(ChatBackend):
    """Chat backend replaying scripted streams.

    Each entry of ``scripts`` is consumed by one send_message_stream call;
    an entry is a list of Fragments and exceptions, raised in place.
    """

    def __init__(self, scripts=None, structured=None, usage=None):
        self.scripts = list(scripts or [])
        self.structured = dict(structured or {})
        self.usage = usage
        self.sent = []
        self.prompts = []
        self.instructions = []
        self.closed = False

    def start_session(self, system_instruction: str) -> None:
        self.instructions.append(system_instruction)

    async def send_message_stream(self, message, media=None):
        self.sent.append((message, media))
        script = self.scripts.pop(0) if self.scripts else []

        async def _replay():
            for item in script:
                await asyncio.sleep(0)
                if isinstance(item, BaseException):
                    raise item
                yield item
            if self.usage is not None:
                stream.set_usage(self.usage)

        stream = FragmentStream(_replay())
        return stream

    async def generate_structured(self, prompt, schema):
        self.prompts.append(prompt)
        result = self.structured.get(schema)
        if isinstance(result, BaseException):
            raise result
        return result if result is not None else schema()

    async def close(self) -> None:
        self.closed = True


class FakeHandle(PlaybackHandle):
    """Playback handle whose end is triggered by the test."""

    def __init__(self, text: str, kind: HandleKind = HandleKind.BUFFER, start_error=None, **attrs):
        self.text = text
        self.kind = kind
        self.start_error = start_error
        self.started = False
        self.stopped = False
        self.on_end = None
        self.on_error = None
        for name, value in attrs.items():
            setattr(self, name, value)

    def start(self, on_end, on_error) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True
        self.on_end = on_end
        self.on_error = on_error

    def stop(self) -> None:
        self.stopped = True

    def finish(self) -> None:
        """Report natural end of playback, even if already stopped."""
        self.on_end()

    def fail(self, exc: Exception) -> None:
        self.on_error(exc)


class ScriptedSynthesis:
    """Synthesize callable for AudioSessionManager with per-text gates."""

    def __init__(self):
        self.calls: list[str] = []
        self.handles: dict[str, FakeHandle] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: dict[str, Exception] = {}

    def hold(self, text: str) -> asyncio.Event:
        """Make synthesis of text wait until the returned event is set."""
        self.gates[text] = asyncio.Event()
        return self.gates[text]

    async def __call__(self, text: str) -> FakeHandle:
        self.calls.append(text)
        gate = self.gates.get(text)
        if gate is not None:
            await gate.wait()
        if text in self.failures:
            raise self.failures[text]
        handle = FakeHandle(text)
        self.handles[text] = handle
        return handle


class RecordingControl(PlaybackControl):
    def __init__(self, name: str = "control"):
        self.name = name
        self.states: list[ControlState] = []

    @property
    def state(self) -> ControlState:
        return self.states[-1] if self.states else ControlState.RESTING

    def set_state(self, state: ControlState) -> None:
        self.states.append(state)

    def __repr__(self) -> str:
        return f"RecordingControl({self.name!r})"


class FakeSynthesizer(RemoteSynthesizer):
    def __init__(self, fail_probe: bool = False, error: Exception | None = None):
        self.fail_probe = fail_probe
        self.error = error
        self.calls: list[tuple[str, float]] = []
        self.closed = False

    async def synthesize(self, text: str, rate: float = 1.0) -> bytes:
        self.calls.append((text, rate))
        if self.fail_probe or self.error is not None:
            raise self.error or SynthesisError("[403] API key not valid", status_code=403)
        return f"audio:{text}".encode()

    async def close(self) -> None:
        self.closed = True


class FakeOutput(AudioOutput):
    def __init__(self):
        self.decoded: list[bytes] = []

    def decode(self, audio: bytes) -> FakeHandle:
        self.decoded.append(audio)
        return FakeHandle(audio.decode(), kind=HandleKind.BUFFER)


class FakeLocalEngine(LocalSpeechEngine):
    def __init__(self, voices: list[Voice] | None = None):
        self._voices = list(voices or [])
        self._listeners: list[Callable[[list[Voice]], None]] = []
        self.utterances: list[FakeHandle] = []

    def voices(self) -> list[Voice]:
        return list(self._voices)

    def on_voices_changed(self, callback) -> None:
        self._listeners.append(callback)

    def publish(self, voices: list[Voice]) -> None:
        self._voices = list(voices)
        for listener in self._listeners:
            listener(self.voices())

    def create_utterance(self, text, voice, pitch=1.0, rate=1.0) -> FakeHandle:
        handle = FakeHandle(text, kind=HandleKind.UTTERANCE, voice=voice, pitch=pitch, rate=rate)
        self.utterances.append(handle)
        return handle


class FakeView(SuggestionView):
    def __init__(self, typed: str = "", loading: bool = False):
        self.typed = typed
        self.loading = loading
        self.events: list[tuple] = []

    def input_text(self) -> str:
        return self.typed

    def is_loading(self) -> bool:
        return self.loading

    def show_placeholders(self, count: int) -> None:
        self.events.append(("placeholders", count))

    def show_suggestions(self, suggestions: list[str]) -> None:
        self.events.append(("suggestions", list(suggestions)))

    def clear(self) -> None:
        self.events.append(("clear",))


@pytest.fixture
def domain():
    """Approved domain used throughout the tests."""
    return ApprovedDomain(TEST_DOMAIN)


@pytest.fixture
def chat_backend():
    return FakeChatBackend()


@pytest.fixture
def synthesis():
    return ScriptedSynthesis()


@pytest.fixture
def fragment():
    """Build a Fragment: fragment("text", "https://...")."""
    def _make(text: str = "", *citations: str) -> Fragment:
        return Fragment(text=text, citations=citations)
    return _make
