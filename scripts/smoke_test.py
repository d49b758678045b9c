"""Smoke test: health checks plus an offline pass over a synthetic take."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from audio.vad import SpeechBoundary, VADEngine
from fluency.analyzer import FluencyAnalyzer
from main import run_startup_health_checks


def synthetic_take(tick_ms: float = 16.0) -> list[tuple[float, np.ndarray]]:
    """Two seconds of tone, two of silence, one of tone."""
    rng = np.random.default_rng(7)
    frames = []
    now = 0.0
    for seconds, amplitude in ((2.0, 4000), (2.0, 0), (1.0, 4000)):
        for _ in range(int(seconds * 1000 / tick_ms)):
            frames.append((now, rng.normal(0, amplitude or 1, 256).astype(np.int16)))
            now += tick_ms
    return frames


if __name__ == "__main__":
    ok, details = run_startup_health_checks()
    print(details)

    clock = {"now": 0.0}
    analyzer = FluencyAnalyzer(clock=lambda: clock["now"])
    analyzer.start_session()
    for event in VADEngine().process(synthetic_take()):
        clock["now"] = event.timestamp
        if isinstance(event, SpeechBoundary) and event.kind == "start":
            analyzer.add_pause(event.timestamp)
        elif isinstance(event, SpeechBoundary):
            analyzer.add_speech_segment("", event.timestamp)
    print(analyzer.calculate_metrics())
    raise SystemExit(0 if ok else 1)
