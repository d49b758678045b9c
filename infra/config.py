"""Configuration loading and validation for the fluency coach."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    vad_silence_threshold: float = 0.02
    vad_speech_timeout_ms: float = 1000.0
    vad_buffer_size: int = 256
    vad_tick_hz: float = 60.0
    audio_sample_rate: int = 16000
    audio_device_index: int | None = None
    min_pause_ms: float = 500.0
    realtime_window_segments: int = 5
    strict_sequence: bool = False
    session_seconds: float = 30.0
    log_path: str = "/var/log/fluency.log"

    @property
    def tick_interval_s(self) -> float:
        return 1.0 / self.vad_tick_hz


def load_dotenv(path: str = ".env") -> None:
    """Load .env key-value pairs into environment without overriding existing values."""
    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Load and validate application settings from environment."""
    source = env if env is not None else os.environ
    settings = Settings(
        vad_silence_threshold=float(source.get("VAD_SILENCE_THRESHOLD", 0.02)),
        vad_speech_timeout_ms=float(source.get("VAD_SPEECH_TIMEOUT_MS", 1000)),
        vad_buffer_size=int(source.get("VAD_BUFFER_SIZE", 256)),
        vad_tick_hz=float(source.get("VAD_TICK_HZ", 60)),
        audio_sample_rate=int(source.get("AUDIO_SAMPLE_RATE", 16000)),
        audio_device_index=_parse_optional_int(source.get("AUDIO_DEVICE_INDEX", "")),
        min_pause_ms=float(source.get("MIN_PAUSE_MS", 500)),
        realtime_window_segments=int(source.get("REALTIME_WINDOW_SEGMENTS", 5)),
        strict_sequence=source.get("STRICT_SEQUENCE", "false").strip().lower() in _TRUTHY,
        session_seconds=float(source.get("SESSION_SECONDS", 30)),
        log_path=source.get("LOG_PATH", "/var/log/fluency.log"),
    )
    _validate(settings)
    return settings


def _parse_optional_int(value: str) -> int | None:
    value = value.strip()
    if not value:
        return None
    return int(value)


def _validate(settings: Settings) -> None:
    if not 0.0 <= settings.vad_silence_threshold <= 1.0:
        raise ValueError("VAD_SILENCE_THRESHOLD must be in [0, 1]")
    if settings.vad_speech_timeout_ms <= 0:
        raise ValueError("VAD_SPEECH_TIMEOUT_MS must be positive")
    if settings.vad_buffer_size <= 0:
        raise ValueError("VAD_BUFFER_SIZE must be positive")
    if settings.vad_tick_hz <= 0:
        raise ValueError("VAD_TICK_HZ must be positive")
    if settings.audio_sample_rate <= 0:
        raise ValueError("AUDIO_SAMPLE_RATE must be positive")
    if settings.audio_device_index is not None and settings.audio_device_index < 0:
        raise ValueError("AUDIO_DEVICE_INDEX must be non-negative")
    if settings.min_pause_ms < 0:
        raise ValueError("MIN_PAUSE_MS must be non-negative")
    if settings.realtime_window_segments <= 0:
        raise ValueError("REALTIME_WINDOW_SEGMENTS must be positive")
    if settings.session_seconds <= 0:
        raise ValueError("SESSION_SECONDS must be positive")
