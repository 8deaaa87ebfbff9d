"""Background scheduler hosting render timeouts and probe jobs"""
from apscheduler.schedulers.background import BackgroundScheduler
import atexit
import logging

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def get_scheduler():
    """Return the shared BackgroundScheduler, starting it on first use."""
    global scheduler

    if scheduler is None:
        scheduler = BackgroundScheduler()
        scheduler.configure(
            jobstores={'default': {'type': 'memory'}},
            job_defaults={'coalesce': True, 'max_instances': 1, 'misfire_grace_time': 30}
        )
        atexit.register(shutdown_scheduler)

    if not scheduler.running:
        scheduler.start()
        logger.info("Background scheduler started")

    return scheduler


def shutdown_scheduler(wait=False):
    """Shutdown the scheduler gracefully"""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=wait)
        logger.info("Background scheduler stopped")
    scheduler = None
