"""Energy-threshold voice activity detection with speech-end debouncing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Union

import numpy as np

from audio.capture import SampleSource
from audio.scheduler import TickScheduler
from infra.time_utils import epoch_ms

logger = logging.getLogger("fluency.vad")


@dataclass(frozen=True)
class SpeechBoundary:
    """Speech boundary event."""

    kind: str  # start|end
    timestamp: float


@dataclass(frozen=True)
class VoiceActivityEvent:
    """Level report while speaking, or the summary of a finished speech run."""

    timestamp: float
    is_speaking: bool
    volume: float
    duration: float


VADSignal = Union[SpeechBoundary, VoiceActivityEvent]


def average_volume(samples: np.ndarray, midpoint: float = 0.0, full_scale: float = 32768.0) -> float:
    """Mean absolute deviation from ``midpoint``, normalized to [0, 1]."""
    values = np.asarray(samples, dtype=np.float64)
    if values.size == 0 or full_scale <= 0:
        return 0.0
    level = float(np.mean(np.abs(values - midpoint))) / full_scale
    return min(max(level, 0.0), 1.0)


@dataclass
class VADState:
    is_speaking: bool = False
    speech_start_time: float = 0.0
    last_speaking_time: float = 0.0
    last_volume: float = 0.0


class VADEngine:
    """Pure speaking/silence state machine driven by wall-clock timestamps."""

    def __init__(self, *, silence_threshold: float = 0.02, speech_timeout_ms: float = 1000.0) -> None:
        self.silence_threshold = silence_threshold
        self.speech_timeout_ms = speech_timeout_ms
        self.state = VADState()

    def reset(self) -> None:
        self.state = VADState()

    def tick(
        self,
        now_ms: float,
        samples: np.ndarray,
        *,
        midpoint: float = 0.0,
        full_scale: float = 32768.0,
    ) -> list[VADSignal]:
        """Consume one sample buffer taken at ``now_ms`` and return the resulting events."""
        state = self.state
        volume = average_volume(samples, midpoint, full_scale)
        state.last_volume = volume
        speaking = volume > self.silence_threshold
        events: list[VADSignal] = []

        if speaking and not state.is_speaking:
            state.is_speaking = True
            state.speech_start_time = now_ms
            events.append(SpeechBoundary(kind="start", timestamp=now_ms))
        elif not speaking and state.is_speaking:
            if now_ms - state.last_speaking_time > self.speech_timeout_ms:
                state.is_speaking = False
                events.append(SpeechBoundary(kind="end", timestamp=now_ms))
                events.append(
                    VoiceActivityEvent(
                        timestamp=state.speech_start_time,
                        is_speaking=False,
                        volume=0.0,
                        duration=state.last_speaking_time - state.speech_start_time,
                    )
                )

        if speaking:
            state.last_speaking_time = now_ms
            events.append(
                VoiceActivityEvent(
                    timestamp=now_ms,
                    is_speaking=True,
                    volume=volume,
                    duration=now_ms - state.speech_start_time,
                )
            )
        return events

    def process(self, frames: Iterable[tuple[float, np.ndarray]], **scale: float) -> Iterator[VADSignal]:
        """Run ``tick`` over ``(timestamp_ms, samples)`` pairs, e.g. a recorded take."""
        for now_ms, samples in frames:
            yield from self.tick(now_ms, samples, **scale)


class VoiceActivityDetector:
    """Drives a :class:`VADEngine` from a sample source on a cooperative tick loop."""

    def __init__(
        self,
        source: SampleSource,
        scheduler: TickScheduler,
        *,
        silence_threshold: float = 0.02,
        speech_timeout_ms: float = 1000.0,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._source = source
        self._scheduler = scheduler
        self._clock = clock or epoch_ms
        self.engine = VADEngine(silence_threshold=silence_threshold, speech_timeout_ms=speech_timeout_ms)
        self._running = False
        self._generation = 0
        self._pending: Any = None
        self._on_activity: Callable[[VoiceActivityEvent], None] | None = None
        self._on_speech_start: Callable[[], None] | None = None
        self._on_speech_end: Callable[[], None] | None = None

    def start_detection(
        self,
        on_activity: Callable[[VoiceActivityEvent], None] | None = None,
        on_speech_start: Callable[[], None] | None = None,
        on_speech_end: Callable[[], None] | None = None,
    ) -> None:
        """Acquire the microphone and start ticking; raises DeviceAcquisitionError."""
        if self._running:
            return

        self._source.open()
        self._on_activity = on_activity
        self._on_speech_start = on_speech_start
        self._on_speech_end = on_speech_end
        self.engine.reset()
        self._running = True
        self._generation += 1
        try:
            self._pending = self._scheduler.schedule(self._tick)
        except Exception:
            self._running = False
            self._on_activity = self._on_speech_start = self._on_speech_end = None
            self._source.close()
            raise
        logger.info("voice detection started", extra={"event_type": "vad_start"})

    def stop_detection(self) -> None:
        was_running = self._running
        self._running = False
        self._generation += 1
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None
        self._on_activity = None
        self._on_speech_start = None
        self._on_speech_end = None
        if was_running:
            self._source.close()
            logger.info("voice detection stopped", extra={"event_type": "vad_stop"})

    def get_current_volume(self) -> float:
        if not self._running:
            return 0.0
        return self.engine.state.last_volume

    def is_currently_detecting(self) -> bool:
        return self._running

    def __enter__(self) -> "VoiceActivityDetector":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop_detection()

    def _tick(self) -> None:
        self._pending = None
        if not self._running:
            return
        generation = self._generation

        samples = self._source.read()
        events = self.engine.tick(
            self._clock(),
            samples,
            midpoint=self._source.midpoint,
            full_scale=self._source.full_scale,
        )
        for event in events:
            # A callback may stop or restart detection; the old run ends here.
            if self._generation != generation:
                return
            self._dispatch(event)

        if self._generation == generation:
            self._pending = self._scheduler.schedule(self._tick)

    def _dispatch(self, event: VADSignal) -> None:
        if isinstance(event, SpeechBoundary):
            logger.info(
                "speech %s",
                event.kind,
                extra={"event_type": f"speech_{event.kind}", "metadata": {"timestamp": event.timestamp}},
            )
            callback = self._on_speech_start if event.kind == "start" else self._on_speech_end
            if callback is not None:
                callback()
        elif self._on_activity is not None:
            self._on_activity(event)
