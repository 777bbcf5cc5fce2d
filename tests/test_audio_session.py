"""Tests for the single-session audio arbitration."""
import asyncio

import pytest
from conftest import RecordingControl

from khadija.audio import AudioSessionManager, ControlState, SessionState
from khadija.errors import SynthesisError


class TestAudioSessionManager:
    """Tests for AudioSessionManager."""

    @pytest.mark.asyncio
    async def test_play_then_play_other_then_complete(self, synthesis):
        manager = AudioSessionManager(synthesis)
        a, b = RecordingControl("a"), RecordingControl("b")

        assert await manager.play("texte A", a)
        assert manager.state is SessionState.PLAYING
        assert manager.is_active(a)
        assert a.state is ControlState.PLAYING

        assert await manager.play("texte B", b)
        handle_a, handle_b = synthesis.handles["texte A"], synthesis.handles["texte B"]
        assert handle_a.stopped
        assert a.state is ControlState.RESTING
        assert manager.is_active(b)
        assert manager.active_handle is handle_b
        assert not handle_b.stopped

        handle_b.finish()
        assert manager.state is SessionState.IDLE
        assert b.state is ControlState.RESTING
        assert manager.active_control is None

    @pytest.mark.asyncio
    async def test_same_control_toggles_off(self, synthesis):
        manager = AudioSessionManager(synthesis)
        control = RecordingControl()

        assert await manager.play("bonjour", control)
        assert not await manager.play("bonjour", control)

        assert synthesis.calls == ["bonjour"]
        assert synthesis.handles["bonjour"].stopped
        assert manager.state is SessionState.IDLE
        assert control.state is ControlState.RESTING

    @pytest.mark.asyncio
    async def test_states_shown_on_control(self, synthesis):
        manager = AudioSessionManager(synthesis)
        control = RecordingControl()

        await manager.play("bonjour", control)
        synthesis.handles["bonjour"].finish()

        assert control.states == [ControlState.BUSY, ControlState.PLAYING, ControlState.RESTING]

    @pytest.mark.asyncio
    async def test_stale_completion_is_ignored(self, synthesis):
        manager = AudioSessionManager(synthesis)
        a, b = RecordingControl("a"), RecordingControl("b")

        await manager.play("A", a)
        await manager.play("B", b)
        synthesis.handles["A"].finish()  # late "ended" from the torn down session

        assert manager.state is SessionState.PLAYING
        assert manager.is_active(b)
        assert b.state is ControlState.PLAYING

    @pytest.mark.asyncio
    async def test_preemption_while_requesting(self, synthesis):
        manager = AudioSessionManager(synthesis)
        a, b = RecordingControl("a"), RecordingControl("b")
        synthesis.hold("A")

        first = asyncio.create_task(manager.play("A", a))
        await asyncio.sleep(0)
        assert manager.state is SessionState.REQUESTING
        assert a.state is ControlState.BUSY

        assert await manager.play("B", b)
        assert await first is False

        assert "A" not in synthesis.handles
        assert a.state is ControlState.RESTING
        assert manager.is_active(b)
        assert manager.state is SessionState.PLAYING

    @pytest.mark.asyncio
    async def test_synthesis_failure_tears_down(self, synthesis):
        manager = AudioSessionManager(synthesis)
        control = RecordingControl()
        synthesis.failures["A"] = SynthesisError("[500] backend error", status_code=500)

        assert not await manager.play("A", control)

        assert manager.state is SessionState.IDLE
        assert manager.active_control is None
        assert control.state is ControlState.RESTING

    @pytest.mark.asyncio
    async def test_playback_error_tears_down(self, synthesis):
        manager = AudioSessionManager(synthesis)
        control = RecordingControl()

        await manager.play("A", control)
        synthesis.handles["A"].fail(RuntimeError("device lost"))

        assert manager.state is SessionState.IDLE
        assert control.state is ControlState.RESTING

    @pytest.mark.asyncio
    async def test_empty_text_does_nothing(self, synthesis):
        manager = AudioSessionManager(synthesis)
        control = RecordingControl()

        assert not await manager.play("   ", control)
        assert synthesis.calls == []
        assert manager.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_caller_cancellation_tears_down(self, synthesis):
        manager = AudioSessionManager(synthesis)
        control = RecordingControl()
        synthesis.hold("A")

        task = asyncio.create_task(manager.play("A", control))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert manager.state is SessionState.IDLE
        assert control.state is ControlState.RESTING

    @pytest.mark.asyncio
    async def test_stop_when_idle_is_safe(self, synthesis):
        manager = AudioSessionManager(synthesis)
        manager.stop()
        manager.stop()
        assert manager.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_at_most_one_unstopped_handle(self, synthesis):
        """Whatever the sequence, only the last handle is still live."""
        manager = AudioSessionManager(synthesis)
        controls = [RecordingControl(str(i)) for i in range(4)]

        for i, control in enumerate(controls):
            await manager.play(f"texte {i}", control)

        live = [h for h in synthesis.handles.values() if not h.stopped]
        assert live == [synthesis.handles["texte 3"]]
        assert [c.state for c in controls[:3]] == [ControlState.RESTING] * 3
