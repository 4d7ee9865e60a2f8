"""Background tasks module."""

from voicenotes.tasks.notification_tasks import send_periodic_digest
from voicenotes.tasks.processing_tasks import PipelineWorker

__all__ = ["PipelineWorker", "send_periodic_digest"]
