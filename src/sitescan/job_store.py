"""Storage for scan jobs.

Jobs are never evicted; a completed or failed job stays queryable for the
life of the store.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from sitescan.models import ScanJob


class JobStore(ABC):
    """Keyed storage of ScanJob records."""

    @abstractmethod
    def get(self, job_id: str) -> Optional[ScanJob]:
        """Return the job, or None if the id is unknown."""

    @abstractmethod
    def put(self, job: ScanJob) -> None:
        """Insert or replace a job."""


class InMemoryJobStore(JobStore):
    """Process-local JobStore backed by a dict."""

    def __init__(self):
        self._jobs: Dict[str, ScanJob] = {}

    def get(self, job_id: str) -> Optional[ScanJob]:
        return self._jobs.get(job_id)

    def put(self, job: ScanJob) -> None:
        self._jobs[job.id] = job
