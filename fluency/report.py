"""Session report payloads and the delivery-sink contract."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, Sequence

from fluency.models import FluencyMetrics, FluencySession, SpeechSegment


class ReportSink(Protocol):
    """Receives finished session reports; raises ReportDeliveryError on failure."""

    def submit(self, payload: dict[str, Any]) -> None: ...


def segment_to_dict(segment: SpeechSegment) -> dict[str, Any]:
    return {
        "text": segment.text,
        "timestamp": segment.timestamp,
        "duration": segment.duration,
        "isPause": segment.is_pause,
        "words": list(segment.words),
    }


def metrics_to_dict(metrics: FluencyMetrics) -> dict[str, Any]:
    return {
        "wordsPerMinute": metrics.words_per_minute,
        "averagePauseDuration": metrics.average_pause_duration,
        "pauseCount": metrics.pause_count,
        "fillerWordCount": metrics.filler_word_count,
        "speechDuration": metrics.speech_duration,
        "totalDuration": metrics.total_duration,
        "fluencyScore": metrics.fluency_score,
        "confidence": metrics.confidence,
    }


def session_to_dict(session: FluencySession) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "sessionId": session.session_id,
        "userId": session.user_id,
        "startTime": session.start_time,
        "segments": [segment_to_dict(s) for s in session.segments],
        "metrics": metrics_to_dict(session.metrics),
        "overallScore": session.overall_score,
    }
    if session.end_time is not None:
        payload["endTime"] = session.end_time
    return payload


def build_report_payload(
    session: FluencySession,
    *,
    user: str,
    user_messages: Sequence[str] = (),
    sent_at: datetime | None = None,
) -> dict[str, Any]:
    """JSON-ready body for the outbound report."""
    sent_at = sent_at or datetime.now(timezone.utc)
    return {
        "user": user,
        "sessionId": session.session_id,
        "userMessages": list(user_messages),
        "fluencySession": session_to_dict(session),
        "timestamp": sent_at.isoformat(),
    }


@dataclass
class InMemoryReportSink:
    """Test sink that records submitted payloads."""

    submitted: list[dict[str, Any]] = field(default_factory=list)

    def submit(self, payload: dict[str, Any]) -> None:
        self.submitted.append(payload)


class LogReportSink:
    """Writes reports to the structured log instead of a network endpoint."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def submit(self, payload: dict[str, Any]) -> None:
        self._logger.info(
            "session report ready",
            extra={"event_type": "session_report", "session_id": payload.get("sessionId"), "metadata": payload},
        )
