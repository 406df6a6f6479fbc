"""Shared plumbing for capture workflows.

A workflow owns a frame source subscription, a latest-frame cell and its own
state. All state transitions happen on the event loop that drives the
workflow; landmark detection and scoring run in an executor and their results
are applied when the awaiting coroutine resumes on the loop.
"""

import asyncio
import functools
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

from ..core.detector import LandmarkDetector
from ..core.logging import log_error
from ..core.verification import FaceVerificationService
from ..exceptions import CaptureUnavailable, NoFaceDetected, TemplateCorrupt
from ..services.credential_store import CredentialStore
from ..services.frame_source import FrameSource, LatestFrame

logger = logging.getLogger(__name__)

S = TypeVar('S')
T = TypeVar('T')


class FailureReason(str, Enum):
    """Why a workflow ended in its failed state."""

    NO_FACE_DETECTED = "no_face_detected"
    TEMPLATE_CORRUPT = "template_corrupt"
    CAPTURE_UNAVAILABLE = "capture_unavailable"
    NO_FRAME = "no_frame"
    NO_REFERENCE = "no_reference"
    VERIFICATION_FAILED = "verification_failed"
    GATE_DENIED = "gate_denied"
    GATE_ERROR = "gate_error"
    STORAGE_FAILED = "storage_failed"
    INTERNAL_ERROR = "internal_error"

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self]


_FAILURE_MESSAGES = {
    FailureReason.NO_FACE_DETECTED: "no face detected",
    FailureReason.TEMPLATE_CORRUPT: "stored face data is corrupt",
    FailureReason.CAPTURE_UNAVAILABLE: "camera could not be started",
    FailureReason.NO_FRAME: "no camera frame available",
    FailureReason.NO_REFERENCE: "no reference data",
    FailureReason.VERIFICATION_FAILED: "verification failed",
    FailureReason.GATE_DENIED: "device authentication was denied",
    FailureReason.GATE_ERROR: "device authentication failed",
    FailureReason.STORAGE_FAILED: "face data could not be saved",
    FailureReason.INTERNAL_ERROR: "an unexpected error occurred",
}


@dataclass(frozen=True)
class Failure:
    """Typed failure with an optional more specific message."""

    reason: FailureReason
    detail: Optional[str] = None

    @property
    def message(self) -> str:
        return self.detail or self.reason.message


def failure_from_error(error: Exception) -> Failure:
    """Map an exception raised while processing a frame to a failure."""
    if isinstance(error, NoFaceDetected):
        return Failure(FailureReason.NO_FACE_DETECTED)
    if isinstance(error, TemplateCorrupt):
        return Failure(FailureReason.TEMPLATE_CORRUPT)
    if isinstance(error, CaptureUnavailable):
        return Failure(FailureReason.CAPTURE_UNAVAILABLE)
    if isinstance(error, OSError):
        return Failure(FailureReason.STORAGE_FAILED)
    return Failure(FailureReason.INTERNAL_ERROR)


class CaptureWorkflow(Generic[S]):
    """Base class for enrollment and authentication workflows."""

    name = "workflow"

    def __init__(
        self,
        initial_state: S,
        frame_source: FrameSource,
        detector: LandmarkDetector,
        service: FaceVerificationService,
        store: CredentialStore,
        executor: Optional[Executor] = None
    ):
        self.frame_source = frame_source
        self.detector = detector
        self.service = service
        self.store = store
        self.executor = executor
        self.frames = LatestFrame()
        self._state = initial_state
        self._listeners: List[Callable[[S], None]] = []
        self._capturing = False
        self._closed = False

    @property
    def state(self) -> S:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Callable[[S], None]) -> Callable[[], None]:
        """Register a state-change listener.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Stop frame delivery and discard any result still in flight."""
        if self._closed:
            return
        self._closed = True
        self._stop_capture()
        self._listeners.clear()
        logger.info(f"{self.name} closed in state {self._describe(self._state)}")

    def _set_state(self, state: S) -> None:
        previous = self._state
        self._state = state
        logger.info(f"{self.name}: {self._describe(previous)} -> {self._describe(state)}")
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                log_error(logger, e, f"{self.name} listener")

    @staticmethod
    def _describe(state: Any) -> str:
        phase = getattr(state, 'phase', state)
        failure = getattr(state, 'failure', None)
        text = getattr(phase, 'value', str(phase))
        if failure is not None:
            text = f"{text}({failure.message})"
        return text

    def _on_frame(self, frame: Any) -> None:
        if not self._closed:
            self.frames.put(frame)

    def _start_capture(self) -> Optional[Failure]:
        """Start the frame source unless it is already running."""
        if self._capturing:
            return None
        try:
            self.frame_source.start(self._on_frame)
        except CaptureUnavailable as e:
            logger.warning(f"{self.name}: capture unavailable: {str(e)}")
            return Failure(FailureReason.CAPTURE_UNAVAILABLE, str(e) or None)
        self._capturing = True
        return None

    def _stop_capture(self) -> None:
        if self._capturing:
            self._capturing = False
            self.frame_source.stop()
        self.frames.clear()

    async def _run_off_loop(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, functools.partial(func, *args))

    def _processing_failure(self, error: Exception) -> Failure:
        failure = failure_from_error(error)
        if failure.reason is FailureReason.INTERNAL_ERROR:
            log_error(logger, error, self.name)
        else:
            logger.warning(f"{self.name}: {type(error).__name__}: {str(error)}")
        return failure
