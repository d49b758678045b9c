"""Time helpers shared by the detector and the analyzer."""

from __future__ import annotations

import time


def epoch_ms() -> float:
    """Return wall-clock time in milliseconds."""
    return time.time() * 1000.0
