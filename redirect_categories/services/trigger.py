from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from redirect_categories.core.titles import NS_CATEGORY, CategoryIdentity
from redirect_categories.services.corpus import Page
from redirect_categories.services.resolver import RedirectResolver

logger = logging.getLogger(__name__)

RECATEGORIZE_JOB_KIND = "recategorize_pages"
RECATEGORIZE_TARGET_TYPE = "category"


class JobQueue(Protocol):
    def enqueue_job(
        self,
        kind: str,
        *,
        target_type: str,
        target_id: str | None,
        inputs: dict[str, Any],
        dedupe_key: str | None = None,
    ) -> tuple[str, bool]: ...


@dataclass(slots=True)
class TriggerDecision:
    enqueued: bool
    reason: str
    job_id: str | None = None
    category_key: str | None = None


def build_recategorize_inputs(identity: CategoryIdentity, *, language: str | None = None) -> dict[str, Any]:
    inputs: dict[str, Any] = {"category_db_key": identity.db_key, "namespace": identity.namespace}
    if language:
        inputs["language"] = language
    return inputs


class ProtectedRedirectTrigger:
    """Schedules a bulk recategorization once a saved category becomes a protected single-hop redirect."""

    def __init__(self, *, resolver: RedirectResolver, queue: JobQueue) -> None:
        self.resolver = resolver
        self.queue = queue

    def on_page_saved(self, page: Page) -> TriggerDecision:
        if page.namespace != NS_CATEGORY:
            return TriggerDecision(enqueued=False, reason="not_category_namespace")

        identity = CategoryIdentity(title=page.title)
        verdict = self.resolver.resolve_page(page)
        if not verdict.is_protected:
            return TriggerDecision(enqueued=False, reason="not_protected", category_key=identity.key)
        if verdict.target is None:
            return TriggerDecision(enqueued=False, reason="no_category_redirect", category_key=identity.key)
        if verdict.target_is_double_redirect:
            logger.warning("category %s is a double redirect; not scheduling recategorization", identity.db_key)
            return TriggerDecision(enqueued=False, reason="double_redirect", category_key=identity.key)

        job_id, created = self.queue.enqueue_job(
            RECATEGORIZE_JOB_KIND,
            target_type=RECATEGORIZE_TARGET_TYPE,
            target_id=identity.key,
            inputs=build_recategorize_inputs(identity, language=page.language),
            dedupe_key=identity.key,
        )
        if not created:
            return TriggerDecision(enqueued=False, reason="already_queued", job_id=job_id, category_key=identity.key)

        logger.info("queued recategorization of %s -> %s job_id=%s", identity.db_key, verdict.target.db_key, job_id)
        return TriggerDecision(enqueued=True, reason="enqueued", job_id=job_id, category_key=identity.key)
