"""Microphone sample sources feeding the voice activity detector."""

from __future__ import annotations

from typing import Iterable, Protocol

import numpy as np

from infra.errors import DeviceAcquisitionError

try:
    import pyaudio  # type: ignore
except ImportError:  # pragma: no cover - optional runtime dependency
    pyaudio = None

INT16_FULL_SCALE = 32768.0


class SampleSource(Protocol):
    """Exclusive handle on a stream of time-domain amplitude samples."""

    midpoint: float
    full_scale: float

    def open(self) -> None: ...

    def read(self) -> np.ndarray: ...

    def close(self) -> None: ...


class PyAudioSource:
    """16-bit mono PyAudio input stream exposing the most recent samples."""

    midpoint = 0.0
    full_scale = INT16_FULL_SCALE

    def __init__(self, *, buffer_size: int = 256, sample_rate: int = 16000, device_index: int | None = None) -> None:
        self.buffer_size = buffer_size
        self.sample_rate = sample_rate
        self.device_index = device_index
        self._pa = None
        self._stream = None
        self._window = np.zeros(buffer_size, dtype=np.int16)

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        if pyaudio is None:
            raise DeviceAcquisitionError("PyAudio is required for microphone capture")
        if self._stream is not None:
            raise DeviceAcquisitionError("microphone already in use by this source")

        pa = pyaudio.PyAudio()
        try:
            self._stream = pa.open(
                format=pyaudio.paInt16,
                channels=1,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.buffer_size,
            )
        except (OSError, ValueError) as exc:
            pa.terminate()
            raise DeviceAcquisitionError(f"cannot open microphone: {exc}") from exc
        self._pa = pa
        self._window = np.zeros(self.buffer_size, dtype=np.int16)

    def read(self) -> np.ndarray:
        """Return the latest ``buffer_size`` samples without blocking."""
        if self._stream is None:
            return np.zeros(0, dtype=np.int16)
        available = self._stream.get_read_available()
        if available > 0:
            data = self._stream.read(available, exception_on_overflow=False)
            fresh = np.frombuffer(data, dtype=np.int16)
            self._window = np.concatenate((self._window, fresh))[-self.buffer_size :]
        return self._window

    def close(self) -> None:
        stream, pa = self._stream, self._pa
        self._stream = None
        self._pa = None
        try:
            if stream is not None:
                stream.stop_stream()
                stream.close()
        finally:
            if pa is not None:
                pa.terminate()


class ArraySource:
    """Replays pre-recorded sample frames, one per read; silence once exhausted."""

    def __init__(self, frames: Iterable[np.ndarray], *, midpoint: float = 0.0, full_scale: float = INT16_FULL_SCALE) -> None:
        self.midpoint = midpoint
        self.full_scale = full_scale
        self._frames = list(frames)
        self._index = 0
        self.is_open = False

    def open(self) -> None:
        if self.is_open:
            raise DeviceAcquisitionError("source already open")
        self.is_open = True
        self._index = 0

    def read(self) -> np.ndarray:
        if not self.is_open or self._index >= len(self._frames):
            return np.zeros(0)
        frame = self._frames[self._index]
        self._index += 1
        return np.asarray(frame)

    def close(self) -> None:
        self.is_open = False
