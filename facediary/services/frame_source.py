"""Camera frame sources.

A frame source pushes frames to a callback from its own thread. Workflows keep
only the most recent frame in a ``LatestFrame`` cell and snapshot it when a
capture is triggered.
"""

import logging
import threading
import time
from typing import Any, Callable, Iterable, Optional

import cv2
from typing_extensions import Protocol

from ..exceptions import CaptureUnavailable

logger = logging.getLogger(__name__)

FrameCallback = Callable[[Any], None]


class FrameSource(Protocol):
    """Subscribe-style feed of opaque image frames."""

    def start(self, on_frame: FrameCallback) -> None:
        ...

    def stop(self) -> None:
        ...


class LatestFrame:
    """Holds the most recent frame delivered by a frame source.

    One producer writes, one consumer snapshots. Older frames are overwritten.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._frame = None
        self._count = 0

    def put(self, frame: Any) -> None:
        with self._lock:
            self._frame = frame
            self._count += 1

    def snapshot(self) -> Optional[Any]:
        with self._lock:
            return self._frame

    def clear(self) -> None:
        with self._lock:
            self._frame = None

    @property
    def frames_received(self) -> int:
        return self._count


class CameraFrameSource:
    """Reads frames from an OpenCV capture device on a background thread."""

    def __init__(self, device: Any = 0, fps: float = 30.0, capture_factory=cv2.VideoCapture):
        self.device = device
        self.interval = 1.0 / fps if fps > 0 else 0.0
        self._capture_factory = capture_factory
        self._capture = None
        self._thread: Optional[threading.Thread] = None
        self._running = threading.Event()

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def start(self, on_frame: FrameCallback) -> None:
        """Open the device and start delivering frames.

        Raises:
            CaptureUnavailable: If the device cannot be opened.
        """
        if self.running:
            return
        if self._capture is not None:
            # previous capture gave up on its own
            self.stop()

        capture = self._capture_factory(self.device)
        if capture is None or not capture.isOpened():
            if capture is not None:
                capture.release()
            raise CaptureUnavailable(f"Failed to open camera device {self.device!r}")

        self._capture = capture
        self._running.set()
        self._thread = threading.Thread(
            target=self._run,
            args=(on_frame,),
            name=f"camera-{self.device}",
            daemon=True
        )
        self._thread.start()
        logger.info(f"Camera {self.device!r} started")

    def _run(self, on_frame: FrameCallback) -> None:
        failures = 0
        while self._running.is_set():
            ok, frame = self._capture.read()
            if not ok:
                failures += 1
                if failures >= 30:
                    logger.warning(f"Camera {self.device!r} stopped delivering frames")
                    self._running.clear()
                    break
                time.sleep(self.interval)
                continue
            failures = 0
            on_frame(frame)
            if self.interval:
                time.sleep(self.interval)

    def stop(self) -> None:
        """Stop frame delivery and release the device."""
        self._running.clear()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._thread = None
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Camera {self.device!r} stopped")


class StaticFrameSource:
    """Delivers a fixed sequence of frames synchronously on ``start``.

    Useful for replaying stored images through a workflow.
    """

    def __init__(self, frames: Iterable[Any] = ()):
        self.frames = list(frames)
        self.started = False
        self._on_frame: Optional[FrameCallback] = None

    def start(self, on_frame: FrameCallback) -> None:
        self.started = True
        self._on_frame = on_frame
        for frame in self.frames:
            on_frame(frame)

    def push(self, frame: Any) -> None:
        """Deliver one more frame while started."""
        if self.started and self._on_frame is not None:
            self._on_frame(frame)

    def stop(self) -> None:
        self.started = False
        self._on_frame = None
