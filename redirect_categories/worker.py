from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any

from opentelemetry import trace

from redirect_categories.core.config import Settings, get_settings
from redirect_categories.core.telemetry import configure_logging, set_job_attributes, setup_telemetry, shutdown_telemetry
from redirect_categories.jobs.executor import execute_job
from redirect_categories.services.corpus import Corpus, get_corpus
from redirect_categories.services.job_client import JobClient

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def process_jobs_once(client: JobClient, *, corpus: Corpus, settings: Settings, limit: int = 5) -> int:
    """Claim and run one batch of queued jobs; returns how many were processed."""
    jobs = await client.get_jobs(limit=limit)
    for job in jobs:
        with tracer.start_as_current_span("worker.process_job") as job_span:
            set_job_attributes(job_span, job)
            claimed = await client.claim_job(job["id"])
            try:
                result = await execute_job(claimed, corpus=corpus, settings=settings)
            except Exception as exc:
                logger.exception("job execution failed for id=%s", claimed["id"])
                await client.submit_result(claimed["id"], status="failed", error_json={"error": str(exc)})
                continue

            status = _terminal_status(result)
            if status == "failed":
                logger.warning("job id=%s failed reason=%s", claimed["id"], result.get("reason"))
            await client.submit_result(claimed["id"], status=status, result_json=result)
    return len(jobs)


async def run_worker() -> None:
    settings = get_settings()
    configure_logging()
    telemetry_runtime = setup_telemetry(settings, role="worker")
    client = JobClient(
        base_url=settings.api_base_url,
        module_id=settings.module_id,
        api_key=settings.api_key,
    )
    corpus = get_corpus()

    backoff = settings.poll_interval_seconds
    last_reap_at = 0.0

    try:
        while True:
            try:
                with tracer.start_as_current_span("worker.poll_cycle"):
                    now = time.monotonic()
                    if now - last_reap_at >= settings.lease_reaper_interval_seconds:
                        requeued = await client.reap_expired_jobs(limit=settings.lease_reaper_batch_size)
                        if requeued:
                            logger.info("requeued expired leases: %s", requeued)
                        last_reap_at = now

                    processed = await process_jobs_once(client, corpus=corpus, settings=settings)
                    if not processed:
                        await asyncio.sleep(settings.poll_interval_seconds)
                        continue

                    backoff = settings.poll_interval_seconds
            except Exception as exc:  # pragma: no cover - loop robustness
                jitter = random.uniform(0.0, 0.5)
                sleep_for = min(backoff * (2.0 + jitter), settings.max_backoff_seconds)
                logger.exception("worker iteration failed: %s; retry in %.1fs", exc, sleep_for)
                await asyncio.sleep(sleep_for)
                backoff = sleep_for
    finally:
        shutdown_telemetry(telemetry_runtime)


def _terminal_status(result: dict[str, Any]) -> str:
    status = result.get("status")
    return status if status in {"done", "failed"} else "done"


if __name__ == "__main__":
    asyncio.run(run_worker())
