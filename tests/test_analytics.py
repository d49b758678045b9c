import pytest

from fluency.analytics import score_improvement, summarize_sessions
from fluency.models import FluencyMetrics, FluencySession


def make_session(
    score: int,
    *,
    wpm: float = 130.0,
    fillers: int = 0,
    pause_avg: float = 0.0,
    pause_count: int = 0,
    speech: float = 900.0,
    total: float = 1000.0,
) -> FluencySession:
    metrics = FluencyMetrics(
        words_per_minute=wpm,
        average_pause_duration=pause_avg,
        pause_count=pause_count,
        filler_word_count=fillers,
        speech_duration=speech,
        total_duration=total,
        fluency_score=score,
        confidence=0.9,
    )
    return FluencySession(
        session_id=f"s{score}",
        user_id="u",
        start_time=0.0,
        segments=(),
        metrics=metrics,
        overall_score=score,
        end_time=total,
    )


def test_empty_history_is_zeroed() -> None:
    analytics = summarize_sessions([])
    assert analytics.session_count == 0
    assert analytics.improvement == 0.0
    assert analytics.strengths == ()


def test_averages_bests_and_improvement() -> None:
    analytics = summarize_sessions([make_session(50, speech=400.0), make_session(75, wpm=140.0)])
    assert analytics.session_count == 2
    assert analytics.average_fluency_score == 62.5
    assert analytics.average_words_per_minute == 135.0
    assert analytics.improvement == 50.0
    assert analytics.best_wpm == 140.0
    assert analytics.best_fluency_score == 75
    assert analytics.longest_speech == 900.0


def test_strengths_for_steady_speaker() -> None:
    analytics = summarize_sessions([make_session(90), make_session(92)])
    assert analytics.strengths == ("Natural speaking pace", "Minimal filler words", "Sustained speaking")
    assert analytics.weaknesses == ()


def test_weaknesses_for_hesitant_speaker() -> None:
    analytics = summarize_sessions(
        [make_session(20, wpm=60.0, fillers=5, pause_avg=4000.0, pause_count=2, speech=300.0)]
    )
    assert analytics.weaknesses == ("Speaking too slowly", "Filler words", "Long pauses", "Low speaking time")


@pytest.mark.parametrize("scores,expected", [([], 0.0), ([70], 0.0), ([0, 50], 0.0), ([40, 50, 60], 37.5)])
def test_score_improvement(scores: list[float], expected: float) -> None:
    assert score_improvement(scores) == expected
