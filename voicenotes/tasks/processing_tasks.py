"""Background processing of ingested notes on a bounded worker pool."""

import asyncio
import logging

from voicenotes.schemas.note import ProcessingStatus
from voicenotes.services.pipeline import NotePipeline
from voicenotes.utils.exceptions import QueueFullError

logger = logging.getLogger(__name__)


class PipelineWorker:
    """Runs ``NotePipeline.complete`` for queued note ids.

    The caller is acknowledged as soon as the audio is stored; the rest of
    the pipeline runs here and its outcome is written back to storage.
    Every failure is logged.
    """

    def __init__(self, pipeline: NotePipeline, worker_count: int = 2, queue_size: int = 100):
        self.pipeline = pipeline
        self.worker_count = max(1, worker_count)
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        """Start the worker tasks on the running event loop."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._run(i), name=f"pipeline-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"Started {self.worker_count} pipeline workers")

    async def stop(self) -> None:
        """Cancel the workers; queued notes stay pending in storage."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        if not self.queue.empty():
            logger.warning(
                f"Stopped with {self.queue.qsize()} notes still queued; they remain pending"
            )

    def ensure_capacity(self) -> None:
        """
        Refuse new work up front when the queue has no free slot.

        Raises:
            QueueFullError: If the queue is at capacity
        """
        if self.queue.full():
            logger.warning(f"Processing queue full ({self.queue.qsize()} queued), refusing new note")
            raise QueueFullError()

    def submit(self, note_id: str) -> None:
        """
        Queue a stored note for processing.

        Raises:
            QueueFullError: If the queue is at capacity
        """
        try:
            self.queue.put_nowait(note_id)
        except asyncio.QueueFull:
            logger.error(f"Processing queue full, could not queue note {note_id}")
            raise QueueFullError()
        logger.info(f"Queued note {note_id} (queue size {self.queue.qsize()})")

    async def requeue_unfinished(self) -> int:
        """Queue notes a previous run left unfinished. Returns how many."""
        notes = await asyncio.to_thread(self.pipeline.storage.list_metadata)
        count = 0
        for note in notes:
            if note.processing_status == ProcessingStatus.COMPLETED:
                continue
            try:
                self.submit(note.id)
                count += 1
            except QueueFullError:
                break
        if count:
            logger.info(f"Requeued {count} unfinished notes")
        return count

    async def join(self) -> None:
        """Wait until every queued note has been processed."""
        await self.queue.join()

    async def _run(self, worker_id: int) -> None:
        while True:
            note_id = await self.queue.get()
            try:
                note = await self.pipeline.complete(note_id)
                logger.info(
                    f"Worker {worker_id} finished note {note_id} ({note.processing_status.value})"
                )
            except Exception:
                logger.exception(f"Worker {worker_id} failed to process note {note_id}")
            finally:
                self.queue.task_done()
