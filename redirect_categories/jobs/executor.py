from __future__ import annotations

import asyncio
from typing import Any

from redirect_categories.core.config import Settings
from redirect_categories.jobs.recategorize import execute_recategorize_pages
from redirect_categories.services.corpus import Corpus
from redirect_categories.services.trigger import RECATEGORIZE_JOB_KIND


async def execute_job(job: dict[str, Any], *, corpus: Corpus, settings: Settings) -> dict[str, Any]:
    if job.get("kind") == RECATEGORIZE_JOB_KIND:
        return await asyncio.to_thread(
            execute_recategorize_pages,
            job,
            corpus=corpus,
            preserve_annotation=settings.recategorize_preserve_annotation,
            failure_policy=settings.recategorize_failure_policy,
        )

    return {
        "handled": False,
        "status": "failed",
        "reason": "unknown_job_kind",
        "kind": job.get("kind"),
        "target_type": job.get("target_type"),
        "target_id": job.get("target_id"),
    }
