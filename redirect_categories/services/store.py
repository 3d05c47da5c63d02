from __future__ import annotations

import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any
from uuid import uuid4

from redirect_categories.jobs.lease_reaper import ReapAction, expired_leases, reap_action
from redirect_categories.schemas.jobs import JobOut

TERMINAL_STATUSES = {"done", "failed", "dead_letter"}


class StoreError(Exception):
    """Base job store error."""


class StoreNotFoundError(StoreError):
    """Raised when the requested job does not exist."""


class StoreConflictError(StoreError):
    """Raised when a job is not in a state that allows the transition."""


class InMemoryJobStore:
    """Job queue that holds at most one pending job per dedupe key.

    A key stays pending from enqueue until the job is claimed; a later enqueue
    for the same key returns the pending job instead of creating another.
    """

    def __init__(self) -> None:
        self.jobs: dict[str, dict[str, Any]] = {}
        self.job_queue: deque[str] = deque()
        self.pending_keys: dict[str, str] = {}
        self._lock = threading.Lock()

    def enqueue_job(
        self,
        kind: str,
        *,
        target_type: str,
        target_id: str | None,
        inputs: dict[str, Any],
        dedupe_key: str | None = None,
    ) -> tuple[str, bool]:
        with self._lock:
            if dedupe_key is not None and dedupe_key in self.pending_keys:
                return self.pending_keys[dedupe_key], False

            job_id = str(uuid4())
            job = JobOut(
                id=job_id,
                kind=kind,
                target_type=target_type,
                target_id=target_id,
                inputs_json=inputs,
                status="queued",
                dedupe_key=dedupe_key,
            ).model_dump()
            job["created_at"] = datetime.now(timezone.utc)
            self.jobs[job_id] = job
            self.job_queue.append(job_id)
            if dedupe_key is not None:
                self.pending_keys[dedupe_key] = job_id
            return job_id, True

    def list_queued_jobs(self, limit: int) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(self.jobs[job_id]) for job_id in list(self.job_queue)[: max(0, limit)]]

    def get_job(self, job_id: str) -> dict[str, Any]:
        job = self.jobs.get(job_id)
        if job is None:
            raise StoreNotFoundError("job not found")
        return dict(job)

    def claim_job(self, job_id: str, *, module_id: str, lease_seconds: int) -> dict[str, Any]:
        with self._lock:
            job = self.jobs.get(job_id)
            if job is None:
                raise StoreNotFoundError("job not found")
            if job["status"] != "queued":
                raise StoreConflictError("job is not claimable")

            now = datetime.now(timezone.utc)
            job["status"] = "claimed"
            job["locked_by_module_id"] = module_id
            job["locked_at"] = now
            job["lease_expires_at"] = now + timedelta(seconds=lease_seconds)
            job["attempt"] = int(job.get("attempt") or 0) + 1
            self._remove_from_queue(job_id)
            self._release_key(job)
            return dict(job)

    def submit_result(
        self,
        job_id: str,
        *,
        module_id: str,
        status: str,
        result_json: dict[str, Any] | None = None,
        error_json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if status not in TERMINAL_STATUSES:
            raise StoreConflictError("invalid terminal status")
        with self._lock:
            job = self.jobs.get(job_id)
            if job is None:
                raise StoreNotFoundError("job not found")
            if job["status"] != "claimed" or job.get("locked_by_module_id") != module_id:
                raise StoreConflictError("job is not claimed by this module")

            job["status"] = status
            job["result_json"] = result_json
            job["error_json"] = error_json
            job["finished_at"] = datetime.now(timezone.utc)
            return dict(job)

    def requeue_expired_jobs(self, *, limit: int, now: datetime | None = None) -> int:
        requeued = 0
        with self._lock:
            for job in expired_leases(self.jobs.values(), now=now):
                if requeued >= limit:
                    break
                dedupe_key = job.get("dedupe_key")
                if reap_action(job, self.pending_keys) is ReapAction.SUPERSEDE:
                    job["status"] = "superseded"
                    job["error_json"] = {"superseded_by": self.pending_keys[dedupe_key]}
                    continue
                job["status"] = "queued"
                job["locked_by_module_id"] = None
                job["lease_expires_at"] = None
                self.job_queue.append(job["id"])
                if dedupe_key is not None:
                    self.pending_keys[dedupe_key] = job["id"]
                requeued += 1
        return requeued

    def _remove_from_queue(self, job_id: str) -> None:
        try:
            self.job_queue.remove(job_id)
        except ValueError:
            pass

    def _release_key(self, job: dict[str, Any]) -> None:
        dedupe_key = job.get("dedupe_key")
        if dedupe_key is not None and self.pending_keys.get(dedupe_key) == job["id"]:
            del self.pending_keys[dedupe_key]


@lru_cache
def get_store() -> InMemoryJobStore:
    return InMemoryJobStore()
