from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from redirect_categories.services.store import InMemoryJobStore, StoreConflictError, StoreNotFoundError


def _enqueue(store: InMemoryJobStore, key: str = "14:Old") -> tuple[str, bool]:
    return store.enqueue_job(
        "recategorize_pages",
        target_type="category",
        target_id=key,
        inputs={"category_db_key": key.split(":", 1)[1]},
        dedupe_key=key,
    )


def test_enqueue_deduplicates_pending_keys() -> None:
    store = InMemoryJobStore()

    first_id, first_created = _enqueue(store)
    second_id, second_created = _enqueue(store)
    other_id, other_created = _enqueue(store, "14:Other")

    assert first_created and other_created
    assert not second_created
    assert second_id == first_id
    assert [job["id"] for job in store.list_queued_jobs(10)] == [first_id, other_id]


def test_concurrent_enqueue_creates_one_job() -> None:
    store = InMemoryJobStore()

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: _enqueue(store), range(64)))

    assert sum(1 for _, created in results if created) == 1
    assert len({job_id for job_id, _ in results}) == 1


def test_claim_and_submit_result() -> None:
    store = InMemoryJobStore()
    job_id, _ = _enqueue(store)

    claimed = store.claim_job(job_id, module_id="worker-1", lease_seconds=60)
    assert claimed["status"] == "claimed"
    assert claimed["attempt"] == 1
    assert store.list_queued_jobs(10) == []
    assert "14:Old" not in store.pending_keys

    with pytest.raises(StoreConflictError):
        store.claim_job(job_id, module_id="worker-2", lease_seconds=60)
    with pytest.raises(StoreConflictError):
        store.submit_result(job_id, module_id="worker-2", status="done")
    with pytest.raises(StoreConflictError):
        store.submit_result(job_id, module_id="worker-1", status="claimed")

    finished = store.submit_result(job_id, module_id="worker-1", status="failed", result_json={"reason": "commit_failed"})
    assert finished["status"] == "failed"
    assert finished["result_json"] == {"reason": "commit_failed"}


def test_unknown_job_raises_not_found() -> None:
    store = InMemoryJobStore()

    with pytest.raises(StoreNotFoundError):
        store.claim_job("missing", module_id="worker-1", lease_seconds=60)
    with pytest.raises(StoreNotFoundError):
        store.get_job("missing")


def test_requeue_expired_claims() -> None:
    store = InMemoryJobStore()
    job_id, _ = _enqueue(store)
    store.claim_job(job_id, module_id="worker-1", lease_seconds=30)

    assert store.requeue_expired_jobs(limit=10) == 0
    requeued = store.requeue_expired_jobs(limit=10, now=datetime.now(timezone.utc) + timedelta(minutes=5))

    assert requeued == 1
    assert store.get_job(job_id)["status"] == "queued"
    assert store.pending_keys["14:Old"] == job_id
    assert _enqueue(store) == (job_id, False)


def test_expired_claim_is_superseded_by_newer_pending_job() -> None:
    store = InMemoryJobStore()
    old_id, _ = _enqueue(store)
    store.claim_job(old_id, module_id="worker-1", lease_seconds=30)
    new_id, created = _enqueue(store)
    assert created

    requeued = store.requeue_expired_jobs(limit=10, now=datetime.now(timezone.utc) + timedelta(minutes=5))

    assert requeued == 0
    assert store.get_job(old_id)["status"] == "superseded"
    assert [job["id"] for job in store.list_queued_jobs(10)] == [new_id]
