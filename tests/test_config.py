import os

import pytest

from infra.config import Settings, load_dotenv, load_settings


def test_load_settings_defaults() -> None:
    settings = load_settings({})
    assert settings == Settings()
    assert settings.vad_silence_threshold == 0.02
    assert settings.vad_speech_timeout_ms == 1000
    assert settings.min_pause_ms == 500
    assert settings.realtime_window_segments == 5
    assert settings.audio_device_index is None
    assert not settings.strict_sequence


def test_load_settings_parses_overrides() -> None:
    settings = load_settings(
        {
            "VAD_SILENCE_THRESHOLD": "0.05",
            "VAD_TICK_HZ": "50",
            "AUDIO_DEVICE_INDEX": "2",
            "STRICT_SEQUENCE": "yes",
        }
    )
    assert settings.vad_silence_threshold == 0.05
    assert settings.tick_interval_s == pytest.approx(0.02)
    assert settings.audio_device_index == 2
    assert settings.strict_sequence


@pytest.mark.parametrize(
    "env",
    [
        {"VAD_SILENCE_THRESHOLD": "1.5"},
        {"VAD_SPEECH_TIMEOUT_MS": "0"},
        {"VAD_BUFFER_SIZE": "-1"},
        {"REALTIME_WINDOW_SEGMENTS": "0"},
        {"MIN_PAUSE_MS": "-10"},
        {"AUDIO_DEVICE_INDEX": "-1"},
    ],
)
def test_invalid_settings_raise(env: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        load_settings(env)


def test_load_dotenv_does_not_override_existing(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("# comment\nVAD_BUFFER_SIZE=512\nMIN_PAUSE_MS=700\n")
    monkeypatch.setenv("MIN_PAUSE_MS", "600")
    monkeypatch.delenv("VAD_BUFFER_SIZE", raising=False)

    load_dotenv(str(env_file))

    assert os.environ["VAD_BUFFER_SIZE"] == "512"
    assert os.environ["MIN_PAUSE_MS"] == "600"
