"""
Tests for runtime wiring and the operator console.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np
import pytest

from masking.agent_view import AgentView
from models.config import Config
from models.errors import CameraUnavailableError
from models.session import Session, SessionStep
from models.verification import VerificationResult
from observation.live import LiveFrameSource
from runtime.console import (
    OperatorConsole,
    compose_side_by_side,
    render_agent_panel,
    render_client_view,
)
from runtime.context import build_runtime
from session.state_machine import SessionStateMachine


class TestBuildRuntime:
    def test_wires_components(self):
        ctx = build_runtime(Config())

        assert isinstance(ctx.source, LiveFrameSource)
        assert isinstance(ctx.agent_view, AgentView)
        assert isinstance(ctx.machine, SessionStateMachine)
        assert ctx.machine.orchestrator is ctx.orchestrator
        assert ctx.orchestrator.match_threshold == 80.0

    def test_agent_view_follows_session_step(self):
        ctx = build_runtime(Config())

        assert ctx.agent_view._mode_provider() == ctx.machine.overlay_mode

    def test_status_before_start(self):
        status = build_runtime(Config()).status()

        assert status["camera_ready"] is False
        assert status["model_state"] == "idle"
        assert status["uptime_seconds"] is None
        assert status["step"] == "FACE_CAPTURE"

    def test_start_records_camera_error(self):
        ctx = build_runtime(Config())
        ctx.source = MagicMock()
        ctx.source.start.side_effect = CameraUnavailableError("Failed to access camera")

        with pytest.raises(CameraUnavailableError):
            asyncio.run(ctx.start())

        assert ctx.camera_error == "Failed to access camera"
        assert not ctx.agent_view.is_running


class TestConsoleRendering:
    def test_client_view_countdown_digit(self):
        frame = np.full((240, 320, 3), 200, dtype=np.uint8)

        plain = render_client_view(frame, Session())
        counting = render_client_view(frame, Session(countdown_remaining=2))

        assert not np.array_equal(plain, counting)
        # Darkened under the countdown
        assert counting[5, 5].max() < plain[5, 5].max()

    def test_client_view_does_not_modify_frame(self):
        frame = np.full((240, 320, 3), 200, dtype=np.uint8)
        render_client_view(frame, Session(countdown_remaining=0))

        assert (frame == 200).all()

    def test_client_view_without_frame(self):
        out = render_client_view(None, Session(), size=(160, 120))

        assert out.shape == (120, 160, 3)

    def test_agent_panel_shows_result(self):
        result = VerificationResult(verified=True, face_match_score=92.3, message="Identity Verified")
        session = Session(step=SessionStep.RESULT, face_image=object(), id_image=object(), result=result)
        surface = np.zeros((240, 320, 3), dtype=np.uint8)

        out = render_agent_panel(surface, session)

        assert out[200:, :].any()
        assert not surface.any()

    def test_compose_scales_right_panel(self):
        left = np.zeros((240, 320, 3), dtype=np.uint8)
        right = np.zeros((480, 640, 3), dtype=np.uint8)

        assert compose_side_by_side(left, right).shape == (240, 640, 3)


class TestConsoleKeys:
    def _console(self):
        machine = MagicMock()
        machine.start_countdown.return_value = True
        ctx = SimpleNamespace(config=Config(), machine=machine)
        return OperatorConsole(ctx), machine

    def test_capture_key(self):
        console, machine = self._console()

        assert console.handle_key(ord("c")) is True
        machine.start_countdown.assert_called_once()

    def test_reset_key(self):
        console, machine = self._console()

        assert console.handle_key(ord("r")) is True
        machine.reset.assert_called_once()

    def test_quit_key(self):
        console, _ = self._console()

        assert console.handle_key(ord("q")) is False

    def test_other_keys_ignored(self):
        console, machine = self._console()

        assert console.handle_key(255) is True
        machine.start_countdown.assert_not_called()
        machine.reset.assert_not_called()
