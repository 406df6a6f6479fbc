"""Device credential gate interface.

A gate runs before face verification when the device requires its own owner
check. It either returns whether the owner passed or raises ``GateError`` for
a policy reason.
"""

from typing_extensions import Protocol

from ..exceptions import GateError, GateFailure


class DeviceCredentialGate(Protocol):
    """Device-level owner check that may precede face verification."""

    async def authenticate(self) -> bool:
        ...


GATE_MESSAGES = {
    GateFailure.NOT_AVAILABLE: "device authentication is not available",
    GateFailure.NOT_ENROLLED: "no device credential is enrolled",
    GateFailure.LOCKED_OUT: "device authentication is locked out",
    GateFailure.PASSCODE_NOT_SET: "device passcode is not set",
    GateFailure.CANCELLED: "device authentication was cancelled",
    GateFailure.FALLBACK: "device authentication fell back to another method",
    GateFailure.FAILED: "device authentication failed",
}


def gate_message(error: GateError) -> str:
    return GATE_MESSAGES.get(error.failure, GATE_MESSAGES[GateFailure.FAILED])
