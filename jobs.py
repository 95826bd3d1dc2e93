"""
jobs.py — Itinerary job lifecycle.

JobOrchestrator.create() validates the request, writes the initial
'processing' record to Firestore (awaited, so a status poll right after
receiving the id always finds it) and hands generation to the
TaskSupervisor.  The background coroutine then writes exactly one terminal
update:

    success → {itinerary, status: 'completed', completedAt}
    failure → {status: 'failed', error, completedAt}

The terminal write is attempted once.  If Firestore rejects it the failure
is logged and the record stays 'processing'.
"""

import asyncio
import logging
import uuid
from typing import Coroutine

from errors import ValidationError
from firestore_client import FirestoreClient
from generation import GenerationClient
from models import Job, completed_fields, failed_fields

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Background task supervision
# ---------------------------------------------------------------------------

class TaskSupervisor:
    """
    Owns fire-and-forget asyncio tasks.

    asyncio only keeps weak references to tasks, so spawned tasks are held
    here until they finish.  drain() waits for everything still running and
    is called at shutdown so in-flight jobs are not cut off.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: str | None = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning('Background task %s was cancelled', task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error('Background task %s crashed: %s', task.get_name(), exc,
                         exc_info=(type(exc), exc, exc.__traceback__))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        while True:
            running = [t for t in self._tasks if not t.done()]
            if not running:
                break
            await asyncio.gather(*running, return_exceptions=True)
        # let done-callbacks of the last batch run
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def validate_job_request(destination, duration_days) -> tuple[str, int]:
    """Reject bad creation input before anything is written."""
    if not isinstance(destination, str) or not destination.strip():
        raise ValidationError('destination must be a non-empty string')
    # bool is an int subclass; True is not a duration
    if isinstance(duration_days, bool) or not isinstance(duration_days, int):
        raise ValidationError('durationDays must be a positive integer')
    if duration_days <= 0:
        raise ValidationError('durationDays must be a positive integer')
    return destination, duration_days


class JobOrchestrator:

    def __init__(self, store: FirestoreClient, generator: GenerationClient,
                 supervisor: TaskSupervisor | None = None):
        self._store      = store
        self._generator  = generator
        self._supervisor = supervisor or TaskSupervisor()

    @property
    def supervisor(self) -> TaskSupervisor:
        return self._supervisor

    async def create(self, destination, duration_days) -> str:
        destination, duration_days = validate_job_request(destination, duration_days)

        job = Job(id=str(uuid.uuid4()), destination=destination, duration_days=duration_days)
        await self._store.create(job.id, job.to_dict())

        self._supervisor.spawn(
            self._run_generation(job.id, destination, duration_days),
            name=f'generate-{job.id[:8]}',
        )
        logger.info('Job %s queued for %s %d days', job.id[:8], destination, duration_days)
        return job.id

    async def get_status(self, job_id: str) -> Job:
        data = await self._store.get(job_id)
        return Job.from_dict(job_id, data)

    async def _run_generation(self, job_id: str, destination: str, duration_days: int) -> None:
        try:
            itinerary = await self._generator.generate(destination, duration_days)
        except Exception as exc:
            logger.error('BG job=%s failed: %s', job_id[:8], exc)
            update = failed_fields(str(exc) or type(exc).__name__)
        else:
            logger.info('BG job=%s: complete — %d day(s)', job_id[:8], len(itinerary))
            update = completed_fields(itinerary)

        try:
            await self._store.patch(job_id, update)
        except Exception as exc:
            logger.error('BG job=%s: terminal update (%s) not saved: %s',
                         job_id[:8], update['status'], exc, exc_info=True)
