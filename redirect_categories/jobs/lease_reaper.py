from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ReapAction(str, Enum):
    REQUEUE = "requeue"
    SUPERSEDE = "supersede"


def _as_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


def lease_expired(job: Mapping[str, Any], now: datetime | None = None) -> bool:
    lease = _as_datetime(job.get("lease_expires_at"))
    if lease is None:
        return False
    return lease <= (now or datetime.now(timezone.utc))


def expired_leases(jobs: Iterable[dict[str, Any]], now: datetime | None = None) -> list[dict[str, Any]]:
    """Claimed jobs whose lease ran out, oldest lease first."""
    now = now or datetime.now(timezone.utc)
    expired = [job for job in jobs if job.get("status") == "claimed" and lease_expired(job, now=now)]
    return sorted(expired, key=lambda job: _as_datetime(job["lease_expires_at"]))


def reap_action(job: Mapping[str, Any], pending_keys: Mapping[str, str]) -> ReapAction:
    # A newer job for the same key already covers this work.
    dedupe_key = job.get("dedupe_key")
    if dedupe_key is not None and dedupe_key in pending_keys:
        return ReapAction.SUPERSEDE
    return ReapAction.REQUEUE
