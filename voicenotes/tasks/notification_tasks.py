import logging

from voicenotes.schemas.search import DigestPeriod
from voicenotes.services.note_service import NoteService
from voicenotes.services.notifier import WebhookNotifier

logger = logging.getLogger(__name__)


async def send_periodic_digest(
    note_service: NoteService, notifier: WebhookNotifier, period: DigestPeriod
) -> None:
    """Build a digest and forward it to the notification sink."""
    try:
        digest = await note_service.generate_digest(period)
    except Exception as e:
        logger.error(f"Failed to build {period.value} digest: {e}")
        return

    if digest.note_count == 0:
        logger.info(f"No notes for the {period.value} digest, nothing sent")
        return

    await notifier.send(f"digest.{period.value}", {"digest": digest.model_dump(mode="json")})
    logger.info(f"Sent {period.value} digest covering {digest.note_count} notes")
