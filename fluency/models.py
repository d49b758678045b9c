"""Value types produced and consumed by the fluency analyzer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SpeechSegment:
    """One unit of recorded speech or pause.

    ``timestamp`` and ``duration`` are milliseconds. ``duration`` is measured
    from the previous speech timestamp, so pauses and speech share one axis.
    """

    text: str
    timestamp: float
    duration: float
    is_pause: bool
    words: tuple[str, ...] = ()


@dataclass(frozen=True)
class FluencyMetrics:
    """Full-session metrics, recomputed from the segment log on demand."""

    words_per_minute: float
    average_pause_duration: float
    pause_count: int
    filler_word_count: int
    speech_duration: float
    total_duration: float
    fluency_score: int
    confidence: float


@dataclass(frozen=True)
class FluencySession:
    """Session-level report handed to the delivery layer."""

    session_id: str
    user_id: str
    start_time: float
    segments: tuple[SpeechSegment, ...]
    metrics: FluencyMetrics
    overall_score: int
    end_time: float | None = None


@dataclass(frozen=True)
class RealtimeFluencyData:
    """Cheap projection over the most recent segments for live display."""

    current_wpm: int
    current_score: int
    pause_indicator: bool
    filler_detected: bool
    speaking_time: float


@dataclass(frozen=True)
class FluencyAnalytics:
    """Summary across several finished sessions."""

    session_count: int
    average_fluency_score: float
    average_words_per_minute: float
    improvement: float
    best_wpm: float
    best_fluency_score: int
    longest_speech: float
    strengths: tuple[str, ...] = ()
    weaknesses: tuple[str, ...] = ()
