"""Persistence contract and an in-memory reference store.

The real store (PostgreSQL in production) is an external collaborator. The
engine only relies on the `JobStore` interface below. Concurrent ingestion of
the same natural key is serialized by the store's own upsert, never by callers.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Literal, Optional, Tuple

from . import filters
from .models import FilterSpec, Job, JobKey

UpsertOutcome = Literal["inserted", "updated"]
MergeFn = Callable[[Job, Job], Job]


class JobStore(ABC):
    """Abstract base class for job persistence."""

    @abstractmethod
    def get(self, key: JobKey) -> Optional[Job]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, job: Job, merge: MergeFn) -> UpsertOutcome:
        """Insert `job`, or replace the stored job with `merge(stored, job)`."""
        raise NotImplementedError

    @abstractmethod
    def find(self, spec: FilterSpec) -> Tuple[List[Job], int]:
        """Return one page of matching jobs and the total match count."""
        raise NotImplementedError

    @abstractmethod
    def all(self) -> List[Job]:
        raise NotImplementedError

    @abstractmethod
    def touch(self, key: JobKey, now: datetime) -> bool:
        raise NotImplementedError

    @abstractmethod
    def mark_expired(self, key: JobKey, now: datetime) -> bool:
        raise NotImplementedError

    @abstractmethod
    def stale(self, updated_before: datetime, limit: int) -> List[Job]:
        """Unexpired jobs not updated since `updated_before`, oldest first.

        Expired jobs are left alone so their `updated_at` ages towards the
        retention cutoff.
        """
        raise NotImplementedError

    @abstractmethod
    def purge(self, created_before: datetime, updated_before: datetime) -> int:
        """Delete jobs created before `created_before` and not updated since `updated_before`."""
        raise NotImplementedError


class InMemoryJobStore(JobStore):
    """Dict-backed store keyed on `(source_id, source)`."""

    def __init__(self) -> None:
        self._jobs: Dict[JobKey, Job] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._jobs)

    def get(self, key: JobKey) -> Optional[Job]:
        return self._jobs.get(key)

    def upsert(self, job: Job, merge: MergeFn) -> UpsertOutcome:
        with self._lock:
            existing = self._jobs.get(job.key)
            if existing is None:
                self._jobs[job.key] = job
                return "inserted"
            self._jobs[job.key] = merge(existing, job)
            return "updated"

    def find(self, spec: FilterSpec) -> Tuple[List[Job], int]:
        return filters.find(spec, self.all())

    def all(self) -> List[Job]:
        with self._lock:
            return list(self._jobs.values())

    def _update(self, key: JobKey, **changes) -> bool:
        with self._lock:
            job = self._jobs.get(key)
            if job is None:
                return False
            self._jobs[key] = job.model_copy(update=changes)
            return True

    def touch(self, key: JobKey, now: datetime) -> bool:
        return self._update(key, updated_at=now)

    def mark_expired(self, key: JobKey, now: datetime) -> bool:
        return self._update(key, expired=True, updated_at=now)

    def stale(self, updated_before: datetime, limit: int) -> List[Job]:
        with self._lock:
            jobs = [j for j in self._jobs.values() if not j.expired and j.updated_at < updated_before]
        jobs.sort(key=lambda j: j.updated_at)
        return jobs[: max(limit, 0)]

    def purge(self, created_before: datetime, updated_before: datetime) -> int:
        with self._lock:
            doomed = [
                k for k, j in self._jobs.items()
                if j.created_at < created_before and j.updated_at < updated_before
            ]
            for k in doomed:
                del self._jobs[k]
        return len(doomed)
