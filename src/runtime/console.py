"""
Operator console: a local OpenCV window for running a session by hand.

Left half is the client feed with the countdown and instruction overlay,
right half is the masked agent view with the step banner.

Keys:
    c  start the countdown for the current capture step
    r  reset the session
    q  quit
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from models.session import Session, SessionStep
from .context import RuntimeContext

WINDOW_NAME = "KYC Live"

CLIENT_INSTRUCTIONS = {
    SessionStep.FACE_CAPTURE: "Please look at the camera",
    SessionStep.ID_CAPTURE: "Please hold your ID card up",
}
PROCESSING_TEXT = "Processing..."

AGENT_TITLES = {
    SessionStep.FACE_CAPTURE: "Step 1: Verify User",
    SessionStep.ID_CAPTURE: "Step 2: Verify ID",
    SessionStep.VERIFYING: "Verifying...",
    SessionStep.RESULT: "Verification Complete",
}

FONT = cv2.FONT_HERSHEY_SIMPLEX


def _put_centered(img: np.ndarray, text: str, cy: int, scale: float, color, thickness: int = 2) -> None:
    (tw, th), _ = cv2.getTextSize(text, FONT, scale, thickness)
    x = max(0, (img.shape[1] - tw) // 2)
    cv2.putText(img, text, (x, cy + th // 2), FONT, scale, color, thickness, cv2.LINE_AA)


def render_client_view(frame: Optional[np.ndarray], session: Session, size: Tuple[int, int] = (640, 480)) -> np.ndarray:
    """Draw the client-facing overlay on a copy of the raw frame."""
    if frame is None:
        out = np.zeros((size[1], size[0], 3), dtype=np.uint8)
    else:
        out = frame.copy()
    h = out.shape[0]

    if session.countdown_active:
        # Darken the feed under the countdown digit
        out = cv2.convertScaleAbs(out, alpha=0.4, beta=0)
        n = session.countdown_remaining
        _put_centered(out, "HOLD" if n == 0 else str(n), h // 2, 4.0, (255, 255, 255), 8)

    instruction = CLIENT_INSTRUCTIONS.get(session.step, PROCESSING_TEXT)
    _put_centered(out, instruction, h - 30, 0.7, (255, 255, 255), 2)
    return out


def render_agent_panel(surface: Optional[np.ndarray], session: Session, size: Tuple[int, int] = (640, 480)) -> np.ndarray:
    """Add the step banner and result line to the masked agent surface."""
    if surface is None:
        out = np.zeros((size[1], size[0], 3), dtype=np.uint8)
    else:
        out = surface.copy()

    cv2.putText(out, AGENT_TITLES[session.step], (10, 30), FONT, 0.8, (255, 200, 0), 2, cv2.LINE_AA)
    if session.result is not None:
        color = (0, 200, 0) if session.result.verified else (0, 0, 255)
        line = f"{session.result.message} ({session.result.face_match_score:.2f})"
        cv2.putText(out, line, (10, out.shape[0] - 20), FONT, 0.6, color, 2, cv2.LINE_AA)
    return out


def compose_side_by_side(left: np.ndarray, right: np.ndarray) -> np.ndarray:
    """Place two panels next to each other, scaling the right one to the left's height."""
    if right.shape[0] != left.shape[0]:
        scale = left.shape[0] / right.shape[0]
        right = cv2.resize(right, (max(1, int(right.shape[1] * scale)), left.shape[0]))
    return np.hstack([left, right])


class OperatorConsole:
    """
    Keyboard-driven session console.

    Example:
        console = OperatorConsole(ctx)
        await console.run()
    """

    def __init__(self, ctx: RuntimeContext, refresh_hz: float = 30.0):
        self.ctx = ctx
        self.delay = 1.0 / refresh_hz
        size = ctx.config.masking.placeholder_size
        self.size = (int(size[0]), int(size[1]))

    def handle_key(self, key: int) -> bool:
        """Apply one key press. Returns False when the console should exit."""
        if key == ord("q"):
            return False
        if key == ord("c"):
            if not self.ctx.machine.start_countdown():
                logging.info(f"Countdown not started in {self.ctx.machine.step.value}")
        elif key == ord("r"):
            self.ctx.machine.reset()
        return True

    def compose(self) -> np.ndarray:
        session = self.ctx.machine.session
        frame_data = self.ctx.source.current_frame()
        client = render_client_view(frame_data.frame if frame_data else None, session, self.size)
        agent = render_agent_panel(self.ctx.agent_view.latest_surface(), session, self.size)
        return compose_side_by_side(client, agent)

    async def run(self) -> None:
        """Show the console until `q` is pressed or the task is cancelled."""
        logging.info("Operator console started (c=capture, r=reset, q=quit)")
        try:
            while True:
                cv2.imshow(WINDOW_NAME, self.compose())
                key = cv2.waitKey(1) & 0xFF
                if not self.handle_key(key):
                    break
                await asyncio.sleep(self.delay)
        finally:
            cv2.destroyAllWindows()
            logging.info("Operator console stopped")
