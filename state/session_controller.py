"""Session controller wiring voice activity and transcripts into the analyzer."""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Protocol

from audio.stt import TranscriptStream
from audio.vad import VoiceActivityEvent
from fluency.analyzer import FluencyAnalyzer
from fluency.models import FluencySession, RealtimeFluencyData
from fluency.report import ReportSink, build_report_payload
from infra.errors import ReportDeliveryError
from infra.logging import get_logger
from infra.time_utils import epoch_ms


class ControllerState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    ENDED = "ENDED"


class Detector(Protocol):
    def start_detection(
        self,
        on_activity: Callable[[VoiceActivityEvent], None] | None = None,
        on_speech_start: Callable[[], None] | None = None,
        on_speech_end: Callable[[], None] | None = None,
    ) -> None: ...

    def stop_detection(self) -> None: ...

    def get_current_volume(self) -> float: ...


class SessionController:
    """Owns one voice session: detector lifecycle, analyzer feed and report hand-off."""

    def __init__(
        self,
        detector: Detector,
        analyzer: FluencyAnalyzer,
        *,
        sink: ReportSink | None = None,
        clock: Callable[[], float] | None = None,
        on_realtime: Callable[[RealtimeFluencyData], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._state = ControllerState.IDLE
        self._detector = detector
        self._analyzer = analyzer
        self._sink = sink
        self._clock = clock or epoch_ms
        self._on_realtime = on_realtime
        self._logger = logger or get_logger()
        self._session_id = ""
        self._user_id = ""
        self._user_messages: list[str] = []

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def session_id(self) -> str:
        return self._session_id

    def start(self, session_id: str, user_id: str) -> None:
        """Begin a session; DeviceAcquisitionError propagates and leaves the controller IDLE."""
        if self._state is ControllerState.LISTENING:
            return
        self._session_id = session_id
        self._user_id = user_id
        self._user_messages = []
        self._analyzer.start_session()
        self._detector.start_detection(
            on_activity=self._handle_activity,
            on_speech_start=self._handle_speech_start,
            on_speech_end=None,
        )
        self._state = ControllerState.LISTENING
        self._log("session started", "session_start", {"user_id": user_id})

    def on_transcript(self, text: str, timestamp: float | None = None) -> None:
        if self._state is not ControllerState.LISTENING:
            return
        when = timestamp if timestamp is not None else self._clock()
        self._analyzer.add_speech_segment(text, when)
        if text.strip():
            self._user_messages.append(text)
        self._publish_realtime()

    def feed_transcripts(self, stream: TranscriptStream) -> None:
        for transcript in stream.final_transcripts():
            self.on_transcript(transcript.text, transcript.timestamp)

    def realtime(self) -> RealtimeFluencyData:
        return self._analyzer.get_realtime_data()

    def current_volume(self) -> float:
        return self._detector.get_current_volume()

    def end_session(self) -> FluencySession:
        """Stop listening, finalize the report and hand it to the sink once.

        A controller that never reached LISTENING, or already ended, delivers nothing.
        """
        was_listening = self._state is ControllerState.LISTENING
        try:
            self._detector.stop_detection()
        finally:
            self._state = ControllerState.ENDED

        session = replace(
            self._analyzer.get_session(self._session_id, self._user_id),
            end_time=self._clock(),
        )
        self._log(
            "session ended",
            "session_end",
            {"overall_score": session.overall_score, "segments": len(session.segments)},
        )

        if self._sink is not None and was_listening:
            payload = build_report_payload(session, user=self._user_id, user_messages=self._user_messages)
            try:
                self._sink.submit(payload)
            except ReportDeliveryError as exc:
                self._logger.error(
                    "session report delivery failed",
                    extra={
                        "event_type": "report_delivery_failed",
                        "state": self._state.value,
                        "session_id": self._session_id,
                        "metadata": {"error": str(exc)},
                    },
                )
        return session

    def _handle_speech_start(self) -> None:
        self._analyzer.add_pause(self._clock())
        self._publish_realtime()

    def _handle_activity(self, event: VoiceActivityEvent) -> None:
        if event.is_speaking:
            return
        # End of a voiced run: credit its span even if no transcript arrived for it.
        speech_end = event.timestamp + event.duration
        last = self._analyzer.last_speech_time
        if last is None or speech_end > last:
            self._analyzer.add_speech_segment("", speech_end)
        self._publish_realtime()

    def _publish_realtime(self) -> None:
        if self._on_realtime is not None:
            self._on_realtime(self._analyzer.get_realtime_data())

    def _log(self, message: str, event_type: str, metadata: dict) -> None:
        self._logger.info(
            message,
            extra={
                "event_type": event_type,
                "state": self._state.value,
                "session_id": self._session_id,
                "metadata": metadata,
            },
        )
