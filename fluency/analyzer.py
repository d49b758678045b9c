"""Fluency analysis over a running log of speech and pause segments."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable

from fluency.models import FluencyMetrics, FluencySession, RealtimeFluencyData, SpeechSegment
from infra.config import Settings
from infra.errors import InvalidSequenceError
from infra.time_utils import epoch_ms

# Multi-word entries can never match a single whitespace-split token; kept verbatim.
FILLER_WORDS = frozenset(
    word.lower()
    for word in (
        "um", "uh", "er", "ah", "like", "you know", "basically",
        "actually", "literally", "sort of", "kind of", "I mean",
        "well", "so", "anyway", "right", "you know what I mean",
    )
)

MIN_PAUSE_MS = 500.0
REALTIME_WINDOW = 5

WPM_LOW = 80.0
WPM_HIGH = 180.0
LONG_PAUSE_MS = 3000.0
SHORT_PAUSE_MS = 500.0
FILLER_PENALTY = 2
MIN_SPEECH_RATIO = 0.6

_NON_WORD = re.compile(r"[^\w\s]")


@dataclass
class SessionState:
    """Mutable accumulator for one session's segment log."""

    segments: list[SpeechSegment] = field(default_factory=list)
    session_start_time: float | None = None
    last_speech_time: float | None = None

    @property
    def started(self) -> bool:
        return self.session_start_time is not None


def extract_words(text: str) -> tuple[str, ...]:
    """Lower-case, drop punctuation and split on whitespace."""
    return tuple(_NON_WORD.sub("", text.lower()).split())


def count_filler_words(words: Iterable[str]) -> int:
    return sum(1 for word in words if word in FILLER_WORDS)


def words_per_minute(total_words: int, speech_duration_ms: float) -> float:
    if speech_duration_ms <= 0:
        return 0.0
    return total_words / speech_duration_ms * 60000.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def raw_fluency_score(
    *,
    wpm: float,
    average_pause_ms: float,
    filler_count: int,
    speech_duration_ms: float,
    total_duration_ms: float,
) -> float:
    """Unclamped score: 100 minus pace, pause, filler and speech-ratio penalties."""
    score = 100.0

    if wpm < WPM_LOW:
        score -= (WPM_LOW - wpm) * 0.5
    elif wpm > WPM_HIGH:
        score -= (wpm - WPM_HIGH) * 0.3

    if average_pause_ms > LONG_PAUSE_MS:
        score -= (average_pause_ms - LONG_PAUSE_MS) * 0.01
    elif average_pause_ms < SHORT_PAUSE_MS:
        # Unreachable for logged pauses (all > MIN_PAUSE_MS) except when there are none.
        score -= (SHORT_PAUSE_MS - average_pause_ms) * 0.02

    score -= filler_count * FILLER_PENALTY

    speech_ratio = speech_duration_ms / max(total_duration_ms, 1.0)
    if speech_ratio < MIN_SPEECH_RATIO:
        score -= (MIN_SPEECH_RATIO - speech_ratio) * 50

    return score


def fluency_score(
    *,
    wpm: float,
    average_pause_ms: float,
    filler_count: int,
    speech_duration_ms: float,
    total_duration_ms: float,
) -> int:
    """Clamp the raw score to [0, 100] and round it to an integer."""
    score = raw_fluency_score(
        wpm=wpm,
        average_pause_ms=average_pause_ms,
        filler_count=filler_count,
        speech_duration_ms=speech_duration_ms,
        total_duration_ms=total_duration_ms,
    )
    return round_half_up(max(0.0, min(100.0, score)))


def confidence_for_score(score: int) -> float:
    if score >= 80:
        return 0.9
    if score >= 60:
        return 0.7
    if score >= 40:
        return 0.5
    return 0.3


def start_session(state: SessionState, now_ms: float) -> None:
    state.segments = []
    state.session_start_time = now_ms
    state.last_speech_time = now_ms


def _elapsed_since_speech(state: SessionState, timestamp: float, strict: bool) -> float:
    if state.last_speech_time is None:
        if strict:
            raise InvalidSequenceError("start_session() must be called before adding segments")
        return 0.0
    return timestamp - state.last_speech_time


def add_speech_segment(state: SessionState, text: str, timestamp: float, *, strict: bool = False) -> SpeechSegment:
    duration = _elapsed_since_speech(state, timestamp, strict)
    segment = SpeechSegment(
        text=text,
        timestamp=timestamp,
        duration=duration,
        is_pause=False,
        words=extract_words(text),
    )
    state.segments.append(segment)
    state.last_speech_time = timestamp
    return segment


def add_pause(
    state: SessionState,
    timestamp: float,
    *,
    min_pause_ms: float = MIN_PAUSE_MS,
    strict: bool = False,
) -> SpeechSegment | None:
    """Log a pause when the gap since the last speech exceeds ``min_pause_ms``.

    ``last_speech_time`` is left untouched: it always marks the last speech
    event, so consecutive pauses measure from the same anchor.
    """
    duration = _elapsed_since_speech(state, timestamp, strict)
    if duration <= min_pause_ms:
        return None
    segment = SpeechSegment(text="", timestamp=timestamp, duration=duration, is_pause=True)
    state.segments.append(segment)
    return segment


def calculate_metrics(state: SessionState, now_ms: float) -> FluencyMetrics:
    speech_segments = [s for s in state.segments if not s.is_pause]
    pause_segments = [s for s in state.segments if s.is_pause]

    total_words = sum(len(s.words) for s in speech_segments)
    speech_duration = sum(s.duration for s in speech_segments)
    total_duration = now_ms - state.session_start_time if state.started else 0.0

    wpm = words_per_minute(total_words, speech_duration)
    average_pause = (
        sum(s.duration for s in pause_segments) / len(pause_segments) if pause_segments else 0.0
    )
    fillers = sum(count_filler_words(s.words) for s in speech_segments)

    score = fluency_score(
        wpm=wpm,
        average_pause_ms=average_pause,
        filler_count=fillers,
        speech_duration_ms=speech_duration,
        total_duration_ms=total_duration,
    )
    return FluencyMetrics(
        words_per_minute=wpm,
        average_pause_duration=average_pause,
        pause_count=len(pause_segments),
        filler_word_count=fillers,
        speech_duration=speech_duration,
        total_duration=total_duration,
        fluency_score=score,
        confidence=confidence_for_score(score),
    )


def realtime_data(state: SessionState, now_ms: float, *, window: int = REALTIME_WINDOW) -> RealtimeFluencyData:
    """Windowed pace over the last ``window`` entries, full-log score."""
    recent = state.segments[-window:]
    speech = [s for s in recent if not s.is_pause]
    speaking_time = sum(s.duration for s in speech)
    wpm = words_per_minute(sum(len(s.words) for s in speech), speaking_time)

    return RealtimeFluencyData(
        current_wpm=round_half_up(wpm),
        current_score=calculate_metrics(state, now_ms).fluency_score,
        pause_indicator=any(s.is_pause for s in recent),
        filler_detected=any(count_filler_words(s.words) > 0 for s in speech),
        speaking_time=speaking_time,
    )


class FluencyAnalyzer:
    """Session-scoped facade over :class:`SessionState` with an injectable clock."""

    def __init__(self, settings: Settings | None = None, clock: Callable[[], float] | None = None) -> None:
        self._settings = settings or Settings()
        self._clock = clock or epoch_ms
        self._state = SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def segments(self) -> tuple[SpeechSegment, ...]:
        return tuple(self._state.segments)

    @property
    def session_start_time(self) -> float | None:
        return self._state.session_start_time

    @property
    def last_speech_time(self) -> float | None:
        return self._state.last_speech_time

    def start_session(self) -> None:
        start_session(self._state, self._clock())

    def add_speech_segment(self, text: str, timestamp: float) -> SpeechSegment:
        return add_speech_segment(self._state, text, timestamp, strict=self._settings.strict_sequence)

    def add_pause(self, timestamp: float) -> SpeechSegment | None:
        return add_pause(
            self._state,
            timestamp,
            min_pause_ms=self._settings.min_pause_ms,
            strict=self._settings.strict_sequence,
        )

    def calculate_metrics(self) -> FluencyMetrics:
        return calculate_metrics(self._state, self._clock())

    def get_session(self, session_id: str, user_id: str) -> FluencySession:
        metrics = self.calculate_metrics()
        return FluencySession(
            session_id=session_id,
            user_id=user_id,
            start_time=self._state.session_start_time or 0.0,
            segments=tuple(self._state.segments),
            metrics=metrics,
            overall_score=metrics.fluency_score,
        )

    def get_realtime_data(self) -> RealtimeFluencyData:
        return realtime_data(self._state, self._clock(), window=self._settings.realtime_window_segments)
