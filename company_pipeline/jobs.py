"""
In-process background job manager for CSV uploads.

Jobs run as asyncio tasks on the owning event loop, at most `concurrency` at a
time. There is no retry and no cancellation: a caller that stops caring just
stops polling. Only the most recent finished jobs are kept for status lookups
(`keep_completed` / `keep_failed`); older ones are forgotten.
"""
import asyncio
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, Optional, Set

from loguru import logger

from company_pipeline.config import JOB_CONCURRENCY, JOB_KEEP_COMPLETED, JOB_KEEP_FAILED
from company_pipeline.models import UploadResult
from company_pipeline.upload.orchestrator import UploadOrchestrator


class JobState(str, Enum):
    QUEUED = "queued"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Job:
    id: str
    enable_enrichment: bool
    state: JobState = JobState.QUEUED
    progress: int = 0
    result: Optional[UploadResult] = None
    failure_reason: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.id,
            "state": self.state.value,
            "progress": self.progress,
            "enableEnrichment": self.enable_enrichment,
            "result": self.result.to_dict() if self.result else None,
            "failedReason": self.failure_reason,
            "createdAt": self.created_at.isoformat(),
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
        }


class JobManager:
    """Accepts upload jobs, runs them in the background and tracks their status."""

    def __init__(
        self,
        orchestrator: UploadOrchestrator,
        concurrency: int = JOB_CONCURRENCY,
        keep_completed: int = JOB_KEEP_COMPLETED,
        keep_failed: int = JOB_KEEP_FAILED,
    ):
        self.orchestrator = orchestrator
        self._keep = {JobState.COMPLETED: keep_completed, JobState.FAILED: keep_failed}
        self._finished: Dict[JobState, Deque[str]] = {
            JobState.COMPLETED: deque(),
            JobState.FAILED: deque(),
        }
        self._semaphore = asyncio.Semaphore(concurrency)
        self._jobs: Dict[str, Job] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._running: Set[asyncio.Task] = set()

    async def submit(self, csv_text: str, enable_enrichment: bool = False) -> str:
        """Queue a CSV for processing and return its job id immediately."""
        job = Job(id=str(uuid.uuid4()), enable_enrichment=enable_enrichment)
        self._jobs[job.id] = job
        task = asyncio.create_task(self._run(job, csv_text))
        self._tasks[job.id] = task
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        logger.info(f"📥 Queued upload job {job.id} (enrichment: {enable_enrichment})")
        return job.id

    def get_status(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    async def wait(self, job_id: str) -> Job:
        """Wait for a job to finish and return it. Raises KeyError for unknown ids."""
        job = self._jobs[job_id]
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait([task])
        return job

    async def close(self) -> None:
        """Wait for in-flight jobs to finish."""
        if self._running:
            logger.info(f"🛑 Waiting for {len(self._running)} running jobs...")
            await asyncio.wait(list(self._running))

    async def _run(self, job: Job, csv_text: str) -> None:
        async with self._semaphore:
            job.state = JobState.ACTIVE
            job.started_at = datetime.now(timezone.utc)

            def update_progress(value: int) -> None:
                job.progress = max(job.progress, min(value, 100))

            try:
                job.result = await self.orchestrator.process_csv(
                    csv_text,
                    enable_enrichment=job.enable_enrichment,
                    progress=update_progress,
                )
            except Exception as e:
                job.state = JobState.FAILED
                job.failure_reason = str(e)
                logger.error(f"❌ Job {job.id} failed: {e}")
            else:
                job.state = JobState.COMPLETED
                job.progress = 100
                logger.info(f"✅ Job {job.id} completed")
            finally:
                job.finished_at = datetime.now(timezone.utc)
                self._retire(job)

    def _retire(self, job: Job) -> None:
        """Drop the finished task and evict the oldest jobs beyond the retention limit."""
        self._tasks.pop(job.id, None)
        finished = self._finished.get(job.state)
        if finished is None:
            return
        finished.append(job.id)
        while len(finished) > self._keep[job.state]:
            evicted = finished.popleft()
            self._jobs.pop(evicted, None)
            logger.debug(f"🧹 Evicted finished job {evicted}")
