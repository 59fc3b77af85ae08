"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from anchor.core.config import settings
from anchor.core.logging import configure_logging
from anchor.db.session import SessionLocal
from anchor.services.job_runner import run_reconcile_sweep, run_status_tick


logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        _register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running jobs once on startup")
            _run_reconcile_job()
            _run_status_tick_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def _register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        _run_reconcile_job,
        trigger="interval",
        minutes=settings.reconcile_interval_minutes,
        id="calendar_reconcile_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        _run_status_tick_job,
        trigger="interval",
        seconds=settings.status_tick_seconds,
        id="status_tick_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        "Registered scheduler jobs (reconcile every %sm, status tick every %ss, %s)",
        settings.reconcile_interval_minutes,
        settings.status_tick_seconds,
        settings.scheduler_timezone,
    )


def _run_reconcile_job() -> None:
    session = SessionLocal()
    try:
        result = run_reconcile_sweep(session)
        logger.info(
            "Calendar reconcile job complete: checked=%s, cleared=%s, errors=%s",
            result.checked,
            result.cleared,
            result.errors,
        )
    except Exception:  # pragma: no cover - defensive guard
        logger.exception("Calendar reconcile job failed")
    finally:
        session.close()


def _run_status_tick_job() -> None:
    session = SessionLocal()
    try:
        result = run_status_tick(session)
        if result.blocks_started:
            logger.info("Status tick started %s blocks on %s", result.blocks_started, result.day)
    except Exception:  # pragma: no cover - defensive guard
        logger.exception("Status tick job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
