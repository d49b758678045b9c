"""Speech-to-text contracts consumed by the session controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol


@dataclass(frozen=True)
class Transcript:
    """One final utterance from the recognizer and its arrival time in ms."""

    text: str
    timestamp: float


class TranscriptStream(Protocol):
    """Streaming STT transcript source."""

    def final_transcripts(self) -> Iterable[Transcript]: ...
