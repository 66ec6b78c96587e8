from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from inference.engine import DetectionEngine, create_engine_from_config
from masking.agent_view import AgentView, TickScheduler
from masking.renderer import MaskingRenderer
from models.config import Config
from observation.live import LiveFrameSource
from observation.opencv_source import create_source_from_config
from session.state_machine import SessionStateMachine
from verification.backends import create_backends_from_config
from verification.orchestrator import VerificationOrchestrator


@dataclass
class RuntimeContext:
    """Holds the live session components; avoids global singletons."""

    config: Config
    source: LiveFrameSource
    engine: DetectionEngine
    agent_view: AgentView
    machine: SessionStateMachine
    orchestrator: VerificationOrchestrator

    started_at: Optional[float] = None
    camera_error: Optional[str] = None

    async def start(self) -> None:
        """
        Open the camera and start the agent view.

        Raises:
            CameraUnavailableError: If the camera cannot be opened.
        """
        try:
            await asyncio.to_thread(self.source.start)
        except Exception as e:
            self.camera_error = str(e)
            logging.error(f"Camera unavailable: {e}")
            raise
        self.camera_error = None
        await self.agent_view.start()
        self.started_at = time.time()
        logging.info("Runtime started")

    async def stop(self) -> None:
        await self.machine.close()
        await self.agent_view.stop()
        await asyncio.to_thread(self.source.stop)
        logging.info("Runtime stopped")

    def status(self) -> Dict[str, Any]:
        """Snapshot of component health for the status endpoint."""
        uptime = int(time.time() - self.started_at) if self.started_at else None
        return {
            "camera_ready": self.source.is_ready,
            "camera_error": self.camera_error,
            "frame_size": [self.source.width, self.source.height],
            "model_state": self.engine.state.value,
            "model_error": self.engine.error,
            "masking_offline": self.agent_view.masking_offline,
            "agent_ticks": self.agent_view.tick_count,
            "uptime_seconds": uptime,
            "step": self.machine.step.value,
        }


def build_runtime(config: Config) -> RuntimeContext:
    """Wire all components from a typed config."""
    source = LiveFrameSource(
        create_source_from_config(config.camera.to_dict(), source_id="kyc-camera"),
        read_interval_s=config.camera.read_interval_s,
    )

    face_matcher, text_reader = create_backends_from_config(config.verification)
    orchestrator = VerificationOrchestrator(
        face_matcher,
        text_reader,
        match_threshold=config.verification.match_threshold,
    )
    machine = SessionStateMachine(source, orchestrator, config.session)

    engine = create_engine_from_config(config.detection)
    agent_view = AgentView(
        source,
        engine,
        MaskingRenderer(config.masking),
        mode_provider=lambda: machine.overlay_mode,
        scheduler=TickScheduler(config.masking.refresh_hz),
    )

    return RuntimeContext(
        config=config,
        source=source,
        engine=engine,
        agent_view=agent_view,
        machine=machine,
        orchestrator=orchestrator,
    )
