"""Authentication workflow.

Drives the repeatable capture-and-verify sequence, optionally preceded by a
device credential gate. A successful verification carries the mood inferred
from the verified frame.
"""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ..core.detector import LandmarkDetector, detect_landmarks
from ..core.logging import log_error
from ..core.verification import FaceVerificationService
from ..exceptions import GateError
from ..models.mood import MoodDistribution
from ..models.template import EnrollmentTemplate, VerificationOutcome
from ..services.credential_store import CredentialStore
from ..services.device_gate import DeviceCredentialGate, gate_message
from ..services.frame_source import FrameSource
from .base import CaptureWorkflow, Failure, FailureReason

logger = logging.getLogger(__name__)


class AuthenticationPhase(str, Enum):
    READY = "ready"
    SCANNING = "scanning"
    DEVICE_GATE = "device_gate"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AuthenticationPhase.SUCCESS, AuthenticationPhase.FAILED)


@dataclass(frozen=True)
class AuthenticationState:
    phase: AuthenticationPhase
    failure: Optional[Failure] = None
    outcome: Optional[VerificationOutcome] = None

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal

    @property
    def mood(self) -> Optional[MoodDistribution]:
        return self.outcome.mood if self.outcome is not None else None


READY = AuthenticationState(AuthenticationPhase.READY)
SCANNING = AuthenticationState(AuthenticationPhase.SCANNING)
DEVICE_GATE = AuthenticationState(AuthenticationPhase.DEVICE_GATE)
PROCESSING = AuthenticationState(AuthenticationPhase.PROCESSING)


class AuthenticationWorkflow(CaptureWorkflow[AuthenticationState]):
    """State machine for face login.

    ``READY -> SCANNING -> [DEVICE_GATE] -> PROCESSING -> SUCCESS | FAILED``;
    ``retry`` returns from FAILED to SCANNING. A missing enrollment template
    fails straight from SCANNING without reaching PROCESSING.
    """

    name = "authentication"

    def __init__(
        self,
        frame_source: FrameSource,
        detector: LandmarkDetector,
        service: FaceVerificationService,
        store: CredentialStore,
        gate: Optional[DeviceCredentialGate] = None,
        on_success: Optional[Callable[[MoodDistribution], None]] = None,
        executor: Optional[Executor] = None
    ):
        super().__init__(READY, frame_source, detector, service, store, executor)
        self.gate = gate
        self.on_success = on_success
        self._loading = False

    def start(self) -> bool:
        """Begin scanning frames."""
        if self._closed or self._state.phase is not AuthenticationPhase.READY:
            return False
        self._begin_scanning()
        return True

    def retry(self) -> bool:
        """Discard a failure and resume scanning."""
        if self._closed or self._state.phase is not AuthenticationPhase.FAILED:
            return False
        self._begin_scanning()
        return True

    def _begin_scanning(self) -> None:
        self._set_state(SCANNING)
        failure = self._start_capture()
        if failure is not None:
            self._fail(failure)

    async def authenticate(self) -> bool:
        """Verify the most recent frame against the stored template.

        Returns:
            False if the call was ignored because the workflow was not
            scanning, True otherwise.
        """
        if self._closed or self._loading or self._state.phase is not AuthenticationPhase.SCANNING:
            logger.debug(f"authentication: authenticate ignored in state {self._state.phase.value}")
            return False

        # the phase stays SCANNING while the template loads
        self._loading = True
        try:
            template = await self._run_off_loop(self.store.get)
        except Exception as e:
            if not self._closed:
                self._fail(self._processing_failure(e))
            return True
        finally:
            self._loading = False

        if self._closed:
            return True

        if template is None:
            self._fail(Failure(FailureReason.NO_REFERENCE))
            return True

        if self.gate is not None:
            self._set_state(DEVICE_GATE)
            failure = await self._run_gate()
            if self._closed:
                return True
            if failure is not None:
                self._fail(failure)
                return True

        frame = self.frames.snapshot()
        if frame is None:
            self._fail(Failure(FailureReason.NO_FRAME))
            return True

        self._set_state(PROCESSING)

        try:
            outcome = await self._run_off_loop(self._verify_frame, template, frame)
        except Exception as e:
            if not self._closed:
                self._fail(self._processing_failure(e))
            return True

        if self._closed:
            logger.info("authentication: discarding verification result for closed workflow")
            return True

        if not outcome.accepted:
            self._fail(Failure(FailureReason.VERIFICATION_FAILED))
            return True

        self._set_state(AuthenticationState(AuthenticationPhase.SUCCESS, outcome=outcome))
        if self.on_success is not None:
            try:
                self.on_success(outcome.mood)
            except Exception as e:
                log_error(logger, e, "authentication on_success")
        return True

    async def _run_gate(self) -> Optional[Failure]:
        try:
            passed = await self.gate.authenticate()
        except GateError as e:
            logger.warning(f"authentication: device gate refused: {e.failure.value}")
            return Failure(FailureReason.GATE_ERROR, gate_message(e))
        except Exception as e:
            return self._processing_failure(e)
        if not passed:
            return Failure(FailureReason.GATE_DENIED)
        return None

    def _verify_frame(self, template: EnrollmentTemplate, frame: Any) -> VerificationOutcome:
        probe = detect_landmarks(self.detector, frame)
        return self.service.verify(template, probe)

    def _fail(self, failure: Failure) -> None:
        self._set_state(AuthenticationState(AuthenticationPhase.FAILED, failure=failure))
