"""Fluency coach entry point: one live microphone session."""

from __future__ import annotations

import asyncio
import uuid
from typing import Callable

from audio.capture import PyAudioSource, SampleSource
from audio.scheduler import AsyncioTickScheduler
from audio.vad import VoiceActivityDetector
from fluency.analyzer import FluencyAnalyzer
from fluency.models import FluencySession
from fluency.report import LogReportSink, ReportSink
from infra.config import Settings, load_dotenv, load_settings
from infra.errors import DeviceAcquisitionError
from infra.logging import get_logger
from infra.recovery import AsyncSleeper, BackoffPolicy, is_recoverable_error, retry_operation_async
from state.session_controller import SessionController


def run_startup_health_checks() -> tuple[bool, dict[str, bool]]:
    """Run lightweight startup checks for configuration and logging."""
    checks = {"config_loadable": False, "logger_writable": False}
    try:
        load_dotenv()
        settings = load_settings()
        checks["config_loadable"] = True
        logger = get_logger(primary_path=settings.log_path)
        logger.info("startup health checks completed", extra={"event_type": "health_check", "metadata": checks})
        checks["logger_writable"] = True
    except Exception:
        return False, checks
    return all(checks.values()), checks


async def run_session(
    settings: Settings,
    *,
    session_id: str,
    user_id: str,
    source: SampleSource | None = None,
    sink: ReportSink | None = None,
    clock: Callable[[], float] | None = None,
    sleeper: AsyncSleeper = asyncio.sleep,
) -> FluencySession:
    """Listen for ``settings.session_seconds`` and return the finalized report."""
    logger = get_logger(primary_path=settings.log_path)
    detector = VoiceActivityDetector(
        source
        or PyAudioSource(
            buffer_size=settings.vad_buffer_size,
            sample_rate=settings.audio_sample_rate,
            device_index=settings.audio_device_index,
        ),
        AsyncioTickScheduler(interval_s=settings.tick_interval_s),
        silence_threshold=settings.vad_silence_threshold,
        speech_timeout_ms=settings.vad_speech_timeout_ms,
        clock=clock,
    )
    controller = SessionController(
        detector,
        FluencyAnalyzer(settings, clock),
        sink=sink or LogReportSink(logger),
        clock=clock,
        logger=logger,
    )

    with detector:
        await retry_operation_async(
            lambda: controller.start(session_id, user_id),
            should_retry=is_recoverable_error,
            max_attempts=3,
            backoff=BackoffPolicy(base_seconds=0.5, factor=2.0, max_seconds=2.0),
            sleeper=sleeper,
        )
        await asyncio.sleep(settings.session_seconds)
    return controller.end_session()


def main() -> int:
    ok, checks = run_startup_health_checks()
    settings = load_settings() if ok else Settings()
    logger = get_logger(primary_path=settings.log_path)
    if not ok:
        logger.error("startup health checks failed", extra={"event_type": "health_check", "metadata": checks})
        return 1

    session_id = uuid.uuid4().hex[:12]
    try:
        session = asyncio.run(run_session(settings, session_id=session_id, user_id="local"))
    except DeviceAcquisitionError as exc:
        logger.error(
            "microphone unavailable after retries",
            extra={"event_type": "recovery_exhausted", "session_id": session_id, "metadata": {"error": str(exc)}},
        )
        return 1
    logger.info(
        "fluency session complete",
        extra={"event_type": "shutdown", "session_id": session_id, "metadata": {"score": session.overall_score}},
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
