import asyncio
import threading
from datetime import datetime, timezone

from facediary.core.verification import FaceVerificationService
from facediary.exceptions import GateError, GateFailure
from facediary.models.mood import Mood
from facediary.models.template import EnrollmentTemplate
from facediary.services.credential_store import InMemoryCredentialStore
from facediary.services.frame_source import StaticFrameSource
from facediary.workflows.authentication import AuthenticationPhase, AuthenticationWorkflow
from facediary.workflows.base import FailureReason

from .factories import FailingFrameSource, FakeDetector, FakeGate

P = AuthenticationPhase


def build(enrolled=None, frames=(), source=None, detector=None, gate=None, on_success=None):
    service = FaceVerificationService()
    store = InMemoryCredentialStore()
    if enrolled is not None:
        store.put(service.enroll(enrolled))
    detector = detector or FakeDetector()
    workflow = AuthenticationWorkflow(
        frame_source=source or StaticFrameSource(frames),
        detector=detector,
        service=service,
        store=store,
        gate=gate,
        on_success=on_success
    )
    phases = []
    workflow.subscribe(lambda state: phases.append(state.phase))
    return workflow, detector, phases


async def wait_for_phase(workflow, phase, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while workflow.state.phase is not phase:
        assert loop.time() < deadline, f"still {workflow.state.phase}"
        await asyncio.sleep(0.005)


def test_successful_authentication_forwards_mood(face, smiling_face):
    moods = []
    workflow, _, phases = build(enrolled=face, frames=[smiling_face], on_success=moods.append)

    assert workflow.start()
    assert asyncio.run(workflow.authenticate())

    state = workflow.state
    assert state.phase is P.SUCCESS
    assert state.is_terminal
    assert state.outcome.accepted
    assert state.mood.primary is Mood.HAPPINESS
    assert moods == [state.mood]
    assert phases == [P.SCANNING, P.PROCESSING, P.SUCCESS]


def test_missing_template_fails_without_processing(face):
    workflow, detector, phases = build(enrolled=None, frames=[face])
    workflow.start()

    asyncio.run(workflow.authenticate())

    assert workflow.state.phase is P.FAILED
    assert workflow.state.failure.reason is FailureReason.NO_REFERENCE
    assert workflow.state.failure.message == "no reference data"
    assert P.PROCESSING not in phases
    assert detector.calls == 0


def test_rejected_face_then_retry(face, stranger):
    source = StaticFrameSource([stranger])
    workflow, _, _ = build(enrolled=face, source=source)
    workflow.start()

    asyncio.run(workflow.authenticate())
    assert workflow.state.phase is P.FAILED
    assert workflow.state.failure.reason is FailureReason.VERIFICATION_FAILED
    assert workflow.state.failure.message == "verification failed"
    assert workflow.state.mood is None

    assert workflow.retry()
    assert workflow.state.phase is P.SCANNING

    source.push(face)
    asyncio.run(workflow.authenticate())
    assert workflow.state.phase is P.SUCCESS
    assert workflow.state.mood == {Mood.CALM: 0.7, Mood.NEUTRAL: 0.3}


def test_authenticate_requires_scanning(face):
    workflow, detector, _ = build(enrolled=face, frames=[face])
    assert not asyncio.run(workflow.authenticate())
    assert workflow.state.phase is P.READY

    workflow.start()
    asyncio.run(workflow.authenticate())
    assert not asyncio.run(workflow.authenticate())
    assert detector.calls == 1


def test_concurrent_authenticate_runs_once(face):
    workflow, detector, _ = build(enrolled=face, frames=[face])
    workflow.start()

    async def scenario():
        return await asyncio.gather(workflow.authenticate(), workflow.authenticate())

    assert asyncio.run(scenario()) == [True, False]
    assert detector.calls == 1
    assert workflow.state.phase is P.SUCCESS


def test_gate_passes_before_processing(face):
    gate = FakeGate(result=True)
    workflow, _, phases = build(enrolled=face, frames=[face], gate=gate)
    workflow.start()

    asyncio.run(workflow.authenticate())

    assert gate.calls == 1
    assert phases == [P.SCANNING, P.DEVICE_GATE, P.PROCESSING, P.SUCCESS]


def test_gate_denied(face):
    workflow, detector, phases = build(enrolled=face, frames=[face], gate=FakeGate(result=False))
    workflow.start()

    asyncio.run(workflow.authenticate())

    assert workflow.state.failure.reason is FailureReason.GATE_DENIED
    assert P.PROCESSING not in phases
    assert detector.calls == 0


def test_gate_errors_map_to_specific_messages(face):
    messages = set()
    for failure in (GateFailure.LOCKED_OUT, GateFailure.NOT_ENROLLED, GateFailure.CANCELLED):
        gate = FakeGate(error=GateError(failure))
        workflow, _, _ = build(enrolled=face, frames=[face], gate=gate)
        workflow.start()
        asyncio.run(workflow.authenticate())

        assert workflow.state.failure.reason is FailureReason.GATE_ERROR
        messages.add(workflow.state.failure.message)

    assert "device authentication is locked out" in messages
    assert len(messages) == 3


def test_gate_message_differs_from_verification_failure(face):
    workflow, _, _ = build(enrolled=face, frames=[face], gate=FakeGate(result=False))
    workflow.start()
    asyncio.run(workflow.authenticate())
    assert workflow.state.failure.message != FailureReason.VERIFICATION_FAILED.message


def test_no_face_detected(face):
    workflow, _, _ = build(enrolled=face, frames=["empty room"])
    workflow.start()
    asyncio.run(workflow.authenticate())
    assert workflow.state.failure.reason is FailureReason.NO_FACE_DETECTED


def test_corrupt_template(face):
    workflow, _, _ = build(frames=[face])
    workflow.store.put(EnrollmentTemplate(
        identity="x",
        created_at=datetime.now(timezone.utc),
        landmarks=b"not landmarks"
    ))
    workflow.start()
    asyncio.run(workflow.authenticate())
    assert workflow.state.failure.reason is FailureReason.TEMPLATE_CORRUPT
    assert workflow.retry()


def test_no_frame(face):
    workflow, _, _ = build(enrolled=face, frames=[])
    workflow.start()
    asyncio.run(workflow.authenticate())
    assert workflow.state.failure.reason is FailureReason.NO_FRAME


def test_capture_unavailable(face):
    workflow, _, phases = build(enrolled=face, source=FailingFrameSource(failures=5))
    workflow.start()
    assert phases == [P.SCANNING, P.FAILED]
    assert workflow.state.failure.reason is FailureReason.CAPTURE_UNAVAILABLE


def test_close_during_processing_drops_result(face):
    release = threading.Event()
    moods = []
    source = StaticFrameSource([face])
    workflow, _, _ = build(
        enrolled=face,
        source=source,
        detector=FakeDetector(gate=release),
        on_success=moods.append
    )
    workflow.start()

    async def scenario():
        task = asyncio.ensure_future(workflow.authenticate())
        await wait_for_phase(workflow, P.PROCESSING)
        workflow.close()
        release.set()
        await task

    asyncio.run(scenario())

    assert workflow.state.phase is P.PROCESSING
    assert moods == []
    assert not source.started


def test_frames_after_close_are_ignored(face, stranger):
    class LeakySource:
        def start(self, on_frame):
            self.on_frame = on_frame

        def stop(self):
            pass

    source = LeakySource()
    workflow, _, _ = build(enrolled=face, source=source)
    workflow.start()
    source.on_frame(face)
    assert workflow.frames.snapshot() is face

    workflow.close()
    source.on_frame(stranger)
    assert workflow.frames.snapshot() is None


def test_unexpected_gate_error_is_recoverable(face):
    class BrokenGate:
        async def authenticate(self):
            raise RuntimeError("platform error")

    workflow, detector, phases = build(enrolled=face, frames=[face], gate=BrokenGate())
    workflow.start()

    assert asyncio.run(workflow.authenticate())
    assert workflow.state.phase is P.FAILED
    assert workflow.state.failure.reason is FailureReason.INTERNAL_ERROR
    assert detector.calls == 0

    workflow.gate = FakeGate(result=True)
    assert workflow.retry()
    asyncio.run(workflow.authenticate())
    assert workflow.state.phase is P.SUCCESS


def test_unexpected_store_error_is_recoverable(face):
    class BrokenStore(InMemoryCredentialStore):
        def get(self):
            raise RuntimeError("keychain unavailable")

    workflow = AuthenticationWorkflow(
        frame_source=StaticFrameSource([face]),
        detector=FakeDetector(),
        service=FaceVerificationService(),
        store=BrokenStore()
    )
    workflow.start()

    asyncio.run(workflow.authenticate())
    assert workflow.state.failure.reason is FailureReason.INTERNAL_ERROR
    assert workflow.retry()


def test_failing_success_consumer_keeps_success(face):
    def consumer(mood):
        raise ValueError("journal full")

    workflow, _, _ = build(enrolled=face, frames=[face], on_success=consumer)
    workflow.start()

    assert asyncio.run(workflow.authenticate())
    assert workflow.state.phase is P.SUCCESS


def test_template_loads_off_the_event_loop(face):
    release = threading.Event()
    loaded_on = []

    class SlowStore(InMemoryCredentialStore):
        def get(self):
            loaded_on.append(threading.current_thread())
            release.wait(timeout=5)
            return super().get()

    service = FaceVerificationService()
    store = SlowStore(service.enroll(face))
    workflow = AuthenticationWorkflow(
        frame_source=StaticFrameSource([face]),
        detector=FakeDetector(),
        service=service,
        store=store
    )
    workflow.start()

    async def scenario():
        first = asyncio.ensure_future(workflow.authenticate())
        await asyncio.sleep(0)
        assert workflow.state.phase is P.SCANNING
        second = await workflow.authenticate()
        release.set()
        return await first, second

    assert asyncio.run(scenario()) == (True, False)
    assert loaded_on[0] is not threading.main_thread()
    assert workflow.state.phase is P.SUCCESS


def test_close_while_loading_template(face):
    release = threading.Event()

    class SlowStore(InMemoryCredentialStore):
        def get(self):
            release.wait(timeout=5)
            return super().get()

    service = FaceVerificationService()
    workflow = AuthenticationWorkflow(
        frame_source=StaticFrameSource([face]),
        detector=FakeDetector(),
        service=service,
        store=SlowStore(service.enroll(face))
    )
    workflow.start()

    async def scenario():
        task = asyncio.ensure_future(workflow.authenticate())
        await asyncio.sleep(0)
        workflow.close()
        release.set()
        return await task

    assert asyncio.run(scenario())
    assert workflow.state.phase is P.SCANNING
