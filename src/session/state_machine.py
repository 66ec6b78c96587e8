"""
Session state machine for the capture-and-verify flow.

    FACE_CAPTURE --capture--> ID_CAPTURE --capture--> VERIFYING --done--> RESULT
         ^                                                                 |
         +------------------------------ reset ----------------------------+

Captures are only ever fired by a countdown reaching zero. The session
record is replaced (never edited in place) on each transition and every
new snapshot is pushed to the registered listeners.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Callable, List, Optional

from capture.encoder import capture_frame
from models.config import SessionConfig
from models.session import EncodedImage, OverlayMode, Session, SessionStep
from models.verification import VerificationResult
from observation.base import FrameSource
from verification.orchestrator import VerificationOrchestrator

SessionListener = Callable[[Session], None]
CaptureFn = Callable[[FrameSource, float], Optional[EncodedImage]]


class SessionStateMachine:
    """
    Owns the single Session of an interactive run.

    All methods must be called from the event loop thread; the countdown
    and the verification call run as tasks on that loop.

    Example:
        machine = SessionStateMachine(live_source, orchestrator, SessionConfig())
        machine.add_listener(lambda s: print(s.step))
        machine.start_countdown()
        result = await machine.wait_for_result()
    """

    def __init__(
        self,
        source: FrameSource,
        orchestrator: VerificationOrchestrator,
        config: Optional[SessionConfig] = None,
        capture_fn: CaptureFn = capture_frame,
    ):
        self.source = source
        self.orchestrator = orchestrator
        self.config = config or SessionConfig()
        if self.config.countdown_interval_s <= 0:
            raise ValueError("countdown_interval_s must be positive")
        self._capture_fn = capture_fn
        self._session = Session()
        self._listeners: List[SessionListener] = []
        self._countdown_task: Optional[asyncio.Task] = None
        self._generation = 0
        self._result_ready = asyncio.Event()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def step(self) -> SessionStep:
        return self._session.step

    @property
    def overlay_mode(self) -> OverlayMode:
        return self._session.overlay_mode

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def _set(self, session: Session) -> None:
        if session.step in (SessionStep.VERIFYING, SessionStep.RESULT) and (
            session.face_image is None or session.id_image is None
        ):
            raise RuntimeError(f"Cannot enter {session.step.value} without both images")
        self._session = session
        for listener in self._listeners:
            try:
                listener(session)
            except Exception as e:
                logging.warning(f"Session listener error: {e}")

    def _update(self, **changes) -> None:
        self._set(dataclasses.replace(self._session, **changes))

    def start_countdown(self) -> bool:
        """
        Start the pre-capture countdown.

        Returns False (and does nothing) outside a capture step or while a
        countdown is already running.
        """
        if not self._session.is_capture_step or self._session.countdown_active:
            return False

        self._update(countdown_remaining=self.config.countdown_start)
        self._countdown_task = asyncio.get_running_loop().create_task(
            self._run_countdown(self._generation)
        )
        logging.info(f"Countdown started for {self._session.step.value}")
        return True

    async def _run_countdown(self, generation: int) -> None:
        while True:
            if self._session.countdown_remaining is not None and self._session.countdown_remaining <= 0:
                break
            await asyncio.sleep(self.config.countdown_interval_s)
            if generation != self._generation or self._session.countdown_remaining is None:
                return
            self._update(countdown_remaining=self._session.countdown_remaining - 1)

        self._update(countdown_remaining=None)
        await self.capture()

    async def capture(self) -> bool:
        """
        Capture the current frame for the active step.

        Returns False when the frame source has no frame; the step is left
        unchanged so the operator can retry.
        """
        step = self._session.step
        if step not in (SessionStep.FACE_CAPTURE, SessionStep.ID_CAPTURE):
            return False

        image = self._capture_fn(self.source, self.config.capture_quality)
        if image is None:
            logging.info(f"Capture skipped in {step.value}: frame source not ready")
            return False

        if step == SessionStep.FACE_CAPTURE:
            self._update(face_image=image, step=SessionStep.ID_CAPTURE)
            logging.info("Face captured")
            return True

        self._update(id_image=image, step=SessionStep.VERIFYING)
        logging.info("ID captured, verifying")
        await self._verify(self._generation)
        return True

    async def _verify(self, generation: int) -> None:
        face_image = self._session.face_image
        id_image = self._session.id_image
        try:
            result = await asyncio.to_thread(self.orchestrator.verify, face_image, id_image)
        except Exception as e:
            logging.error(f"Verification failed: {e}")
            result = VerificationResult.failure()

        if generation != self._generation:
            logging.info("Session was reset during verification; result discarded")
            return

        self._update(result=result, step=SessionStep.RESULT)
        self._result_ready.set()
        logging.info(f"Verification complete: verified={result.verified} score={result.face_match_score}")

    def reset(self) -> None:
        """Return to the initial FACE_CAPTURE state from any state."""
        self._generation += 1
        task = self._countdown_task
        self._countdown_task = None
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()
        self._result_ready.clear()
        self._set(Session())
        logging.info("Session reset")

    async def wait_for_result(self, timeout: Optional[float] = None) -> VerificationResult:
        """Wait until the session reaches RESULT and return its result."""
        await asyncio.wait_for(self._result_ready.wait(), timeout=timeout)
        result = self._session.result
        if result is None:
            raise RuntimeError("Session reached RESULT without a verification result")
        return result

    async def close(self) -> None:
        """Cancel any pending countdown or verification wait."""
        task = self._countdown_task
        self._countdown_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
