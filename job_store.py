# job_store.py
import logging
import threading
import time
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field

from errors import DuplicateJobError, InvalidTransitionError

logger = logging.getLogger(__name__)


class JobType(str, Enum):
    DOWNLOAD = "download"
    REMUX = "remux"
    EXTRACT = "extract"


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL = {JobStatus.COMPLETED, JobStatus.FAILED}

# processing -> processing is allowed so progress details can change mid-run
_ALLOWED = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class Job(BaseModel):
    id: str
    type: JobType
    status: JobStatus = JobStatus.PENDING  # pending | processing | completed | failed
    details: str = ""
    result_location: Optional[str] = None
    created_at: int = Field(default_factory=lambda: int(time.time()))


class JobStore:
    """In-memory job registry.

    Records are copied in and out so nothing outside the store can mutate a
    stored job except through ``update``.
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(self, job: Job) -> None:
        with self._lock:
            if job.id in self._jobs:
                raise DuplicateJobError(f"job {job.id} already exists")
            self._jobs[job.id] = job.model_copy()

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def update(
        self,
        job_id: str,
        status: JobStatus,
        details: str,
        result_location: Optional[str] = None,
    ) -> None:
        if status == JobStatus.COMPLETED and not result_location:
            raise InvalidTransitionError(f"job {job_id}: completed requires a result location")
        if result_location and status != JobStatus.COMPLETED:
            raise InvalidTransitionError(f"job {job_id}: result location only allowed on completion")

        with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return
            if status not in _ALLOWED[job.status]:
                logger.warning("Refused transition for job %s: %s -> %s", job_id, job.status.value, status.value)
                raise InvalidTransitionError(
                    f"job {job_id}: cannot move from {job.status.value} to {status.value}"
                )
            changes = {"status": status, "details": details}
            if result_location:
                changes["result_location"] = result_location
            self._jobs[job_id] = job.model_copy(update=changes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

job_store = JobStore()
