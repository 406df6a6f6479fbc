"""Exception hierarchy for face verification and capture workflows."""

from enum import Enum


class FaceDiaryError(Exception):
    """Base exception for face verification errors."""
    pass


class NoFaceDetected(FaceDiaryError):
    """Exception raised when no usable landmark set is available."""
    pass


class TemplateCorrupt(FaceDiaryError):
    """Exception raised when a stored enrollment template cannot be decoded."""
    pass


class CaptureUnavailable(FaceDiaryError):
    """Exception raised when the frame source fails to start."""
    pass


class GateFailure(str, Enum):
    """Reasons a device credential gate can refuse to authenticate."""

    NOT_AVAILABLE = "not_available"
    NOT_ENROLLED = "not_enrolled"
    LOCKED_OUT = "locked_out"
    PASSCODE_NOT_SET = "passcode_not_set"
    CANCELLED = "cancelled"
    FALLBACK = "fallback"
    FAILED = "failed"


class GateError(FaceDiaryError):
    """Exception raised by a device credential gate for a policy reason."""

    def __init__(self, failure: GateFailure, message: str = ""):
        self.failure = GateFailure(failure)
        super().__init__(message or self.failure.value)
