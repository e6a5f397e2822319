from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from cogload.config.settings import settings
from cogload.jobs.daily_load import run_daily_load_calculation

DAILY_LOAD_JOB_ID = "daily_load_calculation"


def _daily_load_tick() -> None:
    try:
        run_daily_load_calculation()
    except Exception as e:
        logger.exception(f"[SCHEDULER] Daily load calculation failed: {e}")


def create_scheduler() -> BackgroundScheduler:
    """Build (but do not start) the scheduler running the daily load job.

    Runs once a day at settings.daily_job_hour:daily_job_minute in
    settings.daily_job_timezone.
    """
    scheduler = BackgroundScheduler(timezone=settings.daily_job_timezone)
    scheduler.add_job(
        _daily_load_tick,
        trigger=CronTrigger(
            hour=settings.daily_job_hour,
            minute=settings.daily_job_minute,
            timezone=settings.daily_job_timezone,
        ),
        id=DAILY_LOAD_JOB_ID,
        name="Daily Cognitive Load Calculation",
        replace_existing=True,
        coalesce=True,
    )
    logger.info(
        f"[SCHEDULER] Daily load job scheduled at {settings.daily_job_hour:02d}:{settings.daily_job_minute:02d} "
        f"({settings.daily_job_timezone})"
    )
    return scheduler
