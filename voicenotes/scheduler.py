import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from voicenotes.schemas.search import DigestPeriod
from voicenotes.services.container import ServiceContainer
from voicenotes.tasks.notification_tasks import send_periodic_digest

logger = logging.getLogger(__name__)

DIGEST_JOB_ID = "daily_digest"


def create_scheduler(container: ServiceContainer) -> AsyncIOScheduler | None:
    """
    Build the scheduler for periodic digests.

    Returns None when digests are disabled or there is nowhere to send them.
    """
    settings = container.settings
    if not settings.digest_schedule_enabled:
        return None
    if container.notifier is None or container.enricher is None:
        logger.warning(
            "Digest schedule enabled but AI processing or notification webhook is not configured"
        )
        return None

    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        send_periodic_digest,
        CronTrigger(hour=settings.digest_hour, minute=0, timezone="UTC"),
        args=[container.note_service, container.notifier, DigestPeriod.DAILY],
        id=DIGEST_JOB_ID,
        replace_existing=True,
    )
    logger.info(f"Scheduled daily digest at {settings.digest_hour:02d}:00 UTC")
    return scheduler
