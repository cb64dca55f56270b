"""
Job scheduler for deal room housekeeping.

Jobs are plain functions registered by name and executed inside the Flask
app context, either from the CLI (``flask run-job <name>``) or from an
external cron that invokes it.

Architecture:
    - @register_job(name) adds a function to the registry
    - SchedulerService.run_job(name) executes one job and reports the outcome
    - Concrete jobs live in dealroom.services.scheduled_jobs
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from flask import Flask

from dealroom.models import db

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Job Registry
# ═══════════════════════════════════════════════════════════════════════════

_job_registry: dict[str, Callable] = {}


def register_job(name: str):
    """Decorator to register a job function.

    Usage:
        @register_job("draft_cleanup")
        def cleanup_drafts(app):
            ...
    """
    def decorator(fn: Callable) -> Callable:
        _job_registry[name] = fn
        return fn
    return decorator


def get_registered_jobs() -> dict[str, Callable]:
    """Return all registered job functions."""
    return dict(_job_registry)


class SchedulerService:
    """
    Runs registered jobs against the Flask app they were initialised with.

    A failing job is logged and reported as ``failed``; its session is
    rolled back so the next job starts clean.
    """

    _app: Flask | None = None

    @classmethod
    def init_app(cls, app: Flask) -> None:
        cls._app = app
        app.extensions["scheduler"] = cls
        logger.info("SchedulerService initialized with %d registered jobs",
                    len(_job_registry))

    @classmethod
    def run_job(cls, job_name: str) -> dict:
        """
        Execute a single job by name.

        Returns:
            Dict with job_name, status, duration_ms, result and error.
        """
        fn = _job_registry.get(job_name)
        if not fn:
            return {"job_name": job_name, "status": "error", "error": f"Unknown job: {job_name}"}

        if not cls._app:
            return {"job_name": job_name, "status": "error", "error": "Scheduler not initialized"}

        start = time.monotonic()
        result = None
        error = None
        status = "success"

        with cls._app.app_context():
            try:
                result = fn(cls._app)
            except Exception as exc:
                db.session.rollback()
                status = "failed"
                error = str(exc)
                logger.exception("Job %s failed: %s", job_name, exc)

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info("Job %s finished status=%s duration_ms=%d", job_name, status, duration_ms)
        return {
            "job_name": job_name,
            "status": status,
            "duration_ms": duration_ms,
            "result": result,
            "error": error,
        }

    @classmethod
    def list_jobs(cls) -> list[dict]:
        """Registered jobs with their one-line descriptions."""
        return [
            {
                "job_name": name,
                "description": (fn.__doc__ or "").strip().splitlines()[0] if fn.__doc__ else "",
            }
            for name, fn in sorted(_job_registry.items())
        ]
