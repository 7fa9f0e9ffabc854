"""APScheduler configuration for the daily schedule sweep."""

import logging
from datetime import date

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from scoreboard.core.config import settings
from scoreboard.core.database import SessionLocal
from scoreboard.core.dependencies import get_today
from scoreboard.schemas.schedule import SweepResult
from scoreboard.services.schedule import ScheduleService

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


def get_db_session() -> Session:
    """Get a database session for scheduler jobs."""
    return SessionLocal()


def sweep_expired_schedules_job(today: date | None = None) -> SweepResult | None:
    """
    Job to delete exam schedules whose date has passed.
    Runs at startup and once a day.
    """
    today = today or get_today()
    logger.info(f"Starting schedule sweep for dates before {today}")

    db = get_db_session()
    try:
        result = ScheduleService(db).sweep_expired(today)
        db.commit()
        logger.info(f"Schedule sweep finished: {len(result.deleted)} deleted, {len(result.failed)} failed")
        return result
    except Exception as e:
        logger.exception(f"Error sweeping schedules: {e}")
        db.rollback()
        return None
    finally:
        db.close()


def init_scheduler() -> AsyncIOScheduler:
    """Initialize and configure the scheduler."""
    global scheduler

    scheduler = AsyncIOScheduler(
        timezone=settings.SCHEDULER_TIMEZONE,
        job_defaults={
            "coalesce": True,  # Combine missed runs
            "max_instances": 1,  # Only one instance of each job at a time
            "misfire_grace_time": 3600,  # Allow 1 hour grace period for missed jobs
        },
    )

    scheduler.add_job(
        sweep_expired_schedules_job,
        trigger=CronTrigger(hour=settings.SWEEP_HOUR, minute=settings.SWEEP_MINUTE),
        id="sweep_expired_schedules",
        name="Sweep expired exam schedules",
        replace_existing=True,
    )

    logger.info(
        f"Scheduler initialized with daily schedule sweep at "
        f"{settings.SWEEP_HOUR:02d}:{settings.SWEEP_MINUTE:02d} ({settings.SCHEDULER_TIMEZONE})"
    )
    return scheduler


def start_scheduler():
    """Start the scheduler."""
    global scheduler
    if scheduler is None:
        scheduler = init_scheduler()

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def stop_scheduler():
    """Stop the scheduler gracefully."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")
