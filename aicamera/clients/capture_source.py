"""In-process capture source fed by frames pushed from the camera client."""

from __future__ import annotations

import logging
from typing import Optional

from aicamera.models.inspiration import CameraPosition, FocusPoint

logger = logging.getLogger(__name__)


class LatestFrameCaptureSource:
    """Keeps the most recent JPEG frame and the last requested focus point.

    Camera hardware lives outside the service, so focusing only records the
    point for the client to pick up. Stopping the source drops the current
    frame; after a restart the next pushed frame counts as the first one again.
    """

    def __init__(self, position: CameraPosition = CameraPosition.BACK) -> None:
        self._frame: Optional[bytes] = None
        self._focus: Optional[FocusPoint] = None
        self._position = position
        self._running = True
        self.frames_received = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def position(self) -> CameraPosition:
        return self._position

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self.frames_received = 0
        logger.info("Capture source started", extra={"position": self._position.value})

    def stop(self) -> None:
        self._running = False
        self._frame = None
        logger.info("Capture source stopped")

    def switch_camera(self, position: CameraPosition) -> bool:
        """Select another camera. Frames from the previous one are discarded."""
        if position == self._position:
            return False
        self._position = position
        self._frame = None
        self._focus = None
        return True

    def push_frame(self, frame: bytes) -> bool:
        """Store a frame. Returns True when it is the first frame received."""
        if not self._running:
            return False
        self._frame = frame
        self.frames_received += 1
        return self.frames_received == 1

    def get_current_frame(self) -> Optional[bytes]:
        return self._frame

    async def focus(self, point: FocusPoint) -> None:
        self._focus = point
        logger.debug("Focus point set", extra={"x": point.x, "y": point.y})

    @property
    def last_focus_point(self) -> Optional[FocusPoint]:
        return self._focus


__all__ = ["LatestFrameCaptureSource"]
