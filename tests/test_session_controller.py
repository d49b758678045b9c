import logging

import pytest

from audio.stt import Transcript
from audio.vad import VoiceActivityEvent
from fluency.analyzer import FluencyAnalyzer
from fluency.report import InMemoryReportSink
from infra.errors import DeviceAcquisitionError, ReportDeliveryError
from state.session_controller import ControllerState, SessionController


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class StubDetector:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.started = False
        self.stopped = 0
        self.on_activity = None
        self.on_speech_start = None

    def start_detection(self, on_activity=None, on_speech_start=None, on_speech_end=None) -> None:
        if self.fail:
            raise DeviceAcquisitionError("no microphone")
        self.started = True
        self.on_activity = on_activity
        self.on_speech_start = on_speech_start

    def stop_detection(self) -> None:
        self.stopped += 1
        self.started = False

    def get_current_volume(self) -> float:
        return 0.25 if self.started else 0.0


class ListStream:
    def __init__(self, transcripts: list[Transcript]) -> None:
        self._transcripts = transcripts

    def final_transcripts(self) -> list[Transcript]:
        return list(self._transcripts)


class FailingSink:
    def submit(self, payload) -> None:
        raise ReportDeliveryError("endpoint down")


LOGGER = logging.getLogger("tests.session_controller")


def make_controller(detector: StubDetector, clock: FakeClock, sink=None, on_realtime=None) -> SessionController:
    return SessionController(
        detector,
        FluencyAnalyzer(clock=clock),
        sink=sink,
        clock=clock,
        on_realtime=on_realtime,
        logger=LOGGER,
    )


def test_full_session_flow_feeds_analyzer_and_sink() -> None:
    clock = FakeClock(0.0)
    detector = StubDetector()
    sink = InMemoryReportSink()
    updates = []
    controller = make_controller(detector, clock, sink=sink, on_realtime=updates.append)

    controller.start("s-1", "alex")
    assert controller.state == ControllerState.LISTENING
    assert detector.started
    assert controller.current_volume() == 0.25

    clock.now = 2000.0
    detector.on_speech_start()
    detector.on_activity(VoiceActivityEvent(timestamp=2000.0, is_speaking=True, volume=0.3, duration=0.0))
    detector.on_activity(VoiceActivityEvent(timestamp=2000.0, is_speaking=False, volume=0.0, duration=1500.0))
    controller.on_transcript("um hello there", 3600.0)

    clock.now = 4000.0
    session = controller.end_session()

    assert controller.state == ControllerState.ENDED
    assert detector.stopped == 1
    assert session.end_time == 4000.0
    assert [(s.is_pause, s.duration) for s in session.segments] == [(True, 2000.0), (False, 3500.0), (False, 100.0)]
    assert session.metrics.filler_word_count == 1
    assert len(updates) == 3

    assert len(sink.submitted) == 1
    payload = sink.submitted[0]
    assert payload["sessionId"] == "s-1"
    assert payload["user"] == "alex"
    assert payload["userMessages"] == ["um hello there"]
    assert payload["fluencySession"]["endTime"] == 4000.0


def test_speech_run_already_covered_by_transcript_is_not_duplicated() -> None:
    clock = FakeClock(0.0)
    detector = StubDetector()
    controller = make_controller(detector, clock)
    controller.start("s-2", "alex")

    controller.on_transcript("hello", 5000.0)
    detector.on_activity(VoiceActivityEvent(timestamp=3000.0, is_speaking=False, volume=0.0, duration=1000.0))

    assert len(controller.end_session().segments) == 1


def test_transcripts_ignored_outside_listening() -> None:
    clock = FakeClock(0.0)
    controller = make_controller(StubDetector(), clock)
    controller.on_transcript("too early", 100.0)
    controller.start("s-3", "alex")
    controller.feed_transcripts(ListStream([Transcript("first", 1000.0), Transcript("second", 2000.0)]))
    assert controller.realtime().speaking_time == 2000.0
    controller.end_session()
    controller.on_transcript("too late", 3000.0)


def test_device_failure_leaves_controller_idle() -> None:
    controller = make_controller(StubDetector(fail=True), FakeClock())
    with pytest.raises(DeviceAcquisitionError):
        controller.start("s-4", "alex")
    assert controller.state == ControllerState.IDLE


def test_delivery_failure_is_logged_not_raised(caplog) -> None:
    clock = FakeClock(0.0)
    detector = StubDetector()
    controller = make_controller(detector, clock, sink=FailingSink())
    controller.start("s-5", "alex")

    with caplog.at_level(logging.ERROR, logger=LOGGER.name):
        session = controller.end_session()

    assert session.session_id == "s-5"
    failures = [r for r in caplog.records if getattr(r, "event_type", None) == "report_delivery_failed"]
    assert len(failures) == 1
    assert failures[0].session_id == "s-5"


def test_end_without_start_delivers_nothing() -> None:
    sink = InMemoryReportSink()
    detector = StubDetector(fail=True)
    controller = make_controller(detector, FakeClock(), sink=sink)
    with pytest.raises(DeviceAcquisitionError):
        controller.start("s-6", "alex")

    controller.end_session()

    assert sink.submitted == []
    assert controller.state == ControllerState.ENDED


def test_report_is_delivered_once() -> None:
    sink = InMemoryReportSink()
    controller = make_controller(StubDetector(), FakeClock(), sink=sink)
    controller.start("s-7", "alex")
    controller.end_session()
    controller.end_session()
    assert len(sink.submitted) == 1
