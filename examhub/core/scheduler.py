import logging
import os
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from examhub.core.config import settings
from examhub.core.database import SessionLocal
from examhub.services.exam_orchestrator import exam_orchestrator
from examhub.services.session_lifecycle import session_lifecycle

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def expire_overdue_attempts():
    db = SessionLocal()
    try:
        expired = exam_orchestrator.expire_overdue_attempts(db)
        if expired:
            logger.info(f"Expiry sweep finished: {expired} attempt(s) expired")
    except Exception as e:
        logger.error(f"Error during attempt expiry sweep: {e}")
    finally:
        db.close()


def sync_session_statuses():
    db = SessionLocal()
    try:
        changed = session_lifecycle.sync_statuses(db)
        if changed:
            logger.info(f"Session status sync updated {changed} session(s)")
    except Exception as e:
        logger.error(f"Error syncing exam session statuses: {e}")
    finally:
        db.close()


def start_scheduler():
    if os.getenv("TESTING") == "true" or not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled")
        return

    if not scheduler.running:
        scheduler.add_job(
            expire_overdue_attempts,
            'interval',
            seconds=settings.SWEEP_INTERVAL_SECONDS,
            id='expire_overdue_attempts',
            name='Expire Overdue Attempts',
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        scheduler.add_job(
            sync_session_statuses,
            'interval',
            seconds=settings.STATUS_SYNC_INTERVAL_SECONDS,
            id='sync_session_statuses',
            name='Sync Exam Session Statuses',
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        scheduler.start()
        logger.info("Scheduler started with attempt expiry and session status jobs")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
