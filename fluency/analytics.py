"""Progress summary across a user's finished sessions."""

from __future__ import annotations

from typing import Sequence

from fluency.analyzer import LONG_PAUSE_MS, MIN_SPEECH_RATIO, WPM_HIGH, WPM_LOW
from fluency.models import FluencyAnalytics, FluencySession

IDEAL_WPM_LOW = 120.0
IDEAL_WPM_HIGH = 150.0
FILLERS_PER_SESSION_LIMIT = 3.0


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def score_improvement(scores: Sequence[float]) -> float:
    """Percent change of the later half's mean score over the earlier half's."""
    if len(scores) < 2:
        return 0.0
    half = len(scores) // 2
    earlier = _mean(scores[:half])
    later = _mean(scores[half:])
    if earlier <= 0:
        return 0.0
    return round((later - earlier) / earlier * 100.0, 1)


def summarize_sessions(sessions: Sequence[FluencySession]) -> FluencyAnalytics:
    """Aggregate sessions given in chronological order."""
    if not sessions:
        return FluencyAnalytics(
            session_count=0,
            average_fluency_score=0.0,
            average_words_per_minute=0.0,
            improvement=0.0,
            best_wpm=0.0,
            best_fluency_score=0,
            longest_speech=0.0,
        )

    metrics = [s.metrics for s in sessions]
    scores = [float(s.overall_score) for s in sessions]
    average_wpm = _mean([m.words_per_minute for m in metrics])
    average_fillers = _mean([float(m.filler_word_count) for m in metrics])
    pauses = [m.average_pause_duration for m in metrics if m.pause_count]
    average_pause = _mean(pauses)
    speech_ratio = _mean([m.speech_duration / max(m.total_duration, 1.0) for m in metrics])

    strengths: list[str] = []
    weaknesses: list[str] = []

    if IDEAL_WPM_LOW <= average_wpm <= IDEAL_WPM_HIGH:
        strengths.append("Natural speaking pace")
    elif average_wpm < WPM_LOW:
        weaknesses.append("Speaking too slowly")
    elif average_wpm > WPM_HIGH:
        weaknesses.append("Speaking too fast")

    if average_fillers > FILLERS_PER_SESSION_LIMIT:
        weaknesses.append("Filler words")
    elif average_fillers < 1:
        strengths.append("Minimal filler words")

    if average_pause > LONG_PAUSE_MS:
        weaknesses.append("Long pauses")
    elif pauses:
        strengths.append("Controlled pauses")

    if speech_ratio < MIN_SPEECH_RATIO:
        weaknesses.append("Low speaking time")
    else:
        strengths.append("Sustained speaking")

    return FluencyAnalytics(
        session_count=len(sessions),
        average_fluency_score=round(_mean(scores), 1),
        average_words_per_minute=round(average_wpm, 1),
        improvement=score_improvement(scores),
        best_wpm=max(m.words_per_minute for m in metrics),
        best_fluency_score=max(s.overall_score for s in sessions),
        longest_speech=max(m.speech_duration for m in metrics),
        strengths=tuple(strengths),
        weaknesses=tuple(weaknesses),
    )
