"""Enrollment workflow.

Drives the one-shot registration sequence: capture frames, take the latest
one on ``submit``, detect landmarks, build a template and store it.
"""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..core.detector import LandmarkDetector, detect_landmarks
from ..core.verification import FaceVerificationService
from ..models.template import EnrollmentTemplate
from ..services.credential_store import CredentialStore
from ..services.frame_source import FrameSource
from .base import CaptureWorkflow, Failure, FailureReason

logger = logging.getLogger(__name__)


class EnrollmentPhase(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (EnrollmentPhase.COMPLETED, EnrollmentPhase.FAILED)


@dataclass(frozen=True)
class EnrollmentState:
    phase: EnrollmentPhase
    failure: Optional[Failure] = None
    template: Optional[EnrollmentTemplate] = None

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal


IDLE = EnrollmentState(EnrollmentPhase.IDLE)
CAPTURING = EnrollmentState(EnrollmentPhase.CAPTURING)
PROCESSING = EnrollmentState(EnrollmentPhase.PROCESSING)


class EnrollmentWorkflow(CaptureWorkflow[EnrollmentState]):
    """State machine for face registration.

    ``IDLE -> CAPTURING -> PROCESSING -> COMPLETED | FAILED``; ``retry``
    returns from FAILED to CAPTURING. Calls made in the wrong state are
    no-ops and return False.
    """

    name = "enrollment"

    def __init__(
        self,
        frame_source: FrameSource,
        detector: LandmarkDetector,
        service: FaceVerificationService,
        store: CredentialStore,
        executor: Optional[Executor] = None
    ):
        super().__init__(IDLE, frame_source, detector, service, store, executor)

    def start(self) -> bool:
        """Begin capturing frames."""
        if self._closed or self._state.phase is not EnrollmentPhase.IDLE:
            return False
        self._begin_capture()
        return True

    def retry(self) -> bool:
        """Discard a failure and resume capturing."""
        if self._closed or self._state.phase is not EnrollmentPhase.FAILED:
            return False
        self._begin_capture()
        return True

    def _begin_capture(self) -> None:
        self._set_state(CAPTURING)
        failure = self._start_capture()
        if failure is not None:
            self._set_state(EnrollmentState(EnrollmentPhase.FAILED, failure=failure))

    async def submit(self) -> bool:
        """Enroll the most recent frame.

        Returns:
            False if the call was ignored because the workflow was not
            capturing, True otherwise.
        """
        if self._closed or self._state.phase is not EnrollmentPhase.CAPTURING:
            logger.debug(f"enrollment: submit ignored in state {self._state.phase.value}")
            return False

        frame = self.frames.snapshot()
        if frame is None:
            self._set_state(EnrollmentState(
                EnrollmentPhase.FAILED,
                failure=Failure(FailureReason.NO_FRAME)
            ))
            return True

        self._set_state(PROCESSING)

        try:
            template = await self._run_off_loop(self._build_template, frame)
        except Exception as e:
            self._finish(failure=self._processing_failure(e))
            return True

        if self._closed:
            logger.info(f"enrollment: discarding template {template.identity} for closed workflow")
            return True

        try:
            await self._run_off_loop(self.store.put, template)
        except Exception as e:
            self._finish(failure=self._processing_failure(e))
            return True

        self._finish(template=template)
        return True

    def _build_template(self, frame: Any) -> EnrollmentTemplate:
        sample = detect_landmarks(self.detector, frame)
        return self.service.enroll(sample)

    def _finish(
        self,
        template: Optional[EnrollmentTemplate] = None,
        failure: Optional[Failure] = None
    ) -> None:
        if self._closed:
            return
        if failure is not None:
            self._set_state(EnrollmentState(EnrollmentPhase.FAILED, failure=failure))
        else:
            self._set_state(EnrollmentState(EnrollmentPhase.COMPLETED, template=template))
