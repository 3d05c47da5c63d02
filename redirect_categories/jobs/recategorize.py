from __future__ import annotations

import logging
import re
from typing import Any, Literal

from opentelemetry import trace

from redirect_categories.core.i18n import lcfirst
from redirect_categories.core.titles import CategoryIdentity
from redirect_categories.services.corpus import Corpus, CorpusError
from redirect_categories.services.resolver import RedirectResolver

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

FailurePolicy = Literal["abort", "continue"]

_TITLE_SPACE_RE = re.compile(r"[_ ]")


def _namespace_variants(names: tuple[str, ...]) -> str:
    variants = dict.fromkeys(variant for name in names for variant in (name, lcfirst(name)))
    return "|".join(re.escape(variant) for variant in variants)


def _title_variants(title: str) -> str:
    variants = dict.fromkeys((title, lcfirst(title)))
    return "|".join("[_ ]".join(re.escape(part) for part in _TITLE_SPACE_RE.split(variant)) for variant in variants)


def build_category_pattern(namespace_names: tuple[str, ...], title: str) -> re.Pattern[str]:
    """Match links to one category; group 1 is the separator, group 2 the annotation."""
    namespaces = _namespace_variants(namespace_names)
    return re.compile(
        rf"\[\[ *(?:{namespaces}): *(?:{_title_variants(title)})(?: *| *(\|) *(.*?) *)\]\]",
    )


def rewrite_category_links(
    text: str,
    pattern: re.Pattern[str],
    target_text: str,
    *,
    preserve_annotation: bool = True,
) -> str:
    def replace(match: re.Match[str]) -> str:
        if preserve_annotation and match.group(1):
            return f"[[{target_text}|{match.group(2)}]]"
        return f"[[{target_text}]]"

    return pattern.sub(replace, text)


def execute_recategorize_pages(
    job: dict[str, Any],
    *,
    corpus: Corpus,
    preserve_annotation: bool = True,
    failure_policy: FailurePolicy = "abort",
) -> dict[str, Any]:
    raw_inputs = job.get("inputs_json")
    inputs: dict[str, Any] = raw_inputs if isinstance(raw_inputs, dict) else {}
    result: dict[str, Any] = {
        "handled": True,
        "kind": job.get("kind"),
        "target_type": job.get("target_type"),
        "target_id": job.get("target_id"),
        "rewritten_page_ids": [],
        "unchanged_page_ids": [],
        "skipped_non_text_page_ids": [],
        "failed_page_ids": [],
    }

    db_key = _as_text(inputs.get("category_db_key"))
    if not db_key:
        return {**result, "status": "failed", "reason": "missing_category"}

    identity = CategoryIdentity.from_title(db_key)
    language = _as_text(inputs.get("language"))
    localizer = corpus.localizer()
    namespace_names = localizer.namespace_names(language)
    result["category"] = identity.prefixed_text(namespace_names[0])

    resolver = RedirectResolver(pages=corpus, redirects=corpus, restrictions=corpus)
    verdict = resolver.resolve(identity)
    if verdict.target_is_double_redirect:
        logger.warning("category %s became a double redirect; skipping recategorization", identity.db_key)
    if not verdict.actionable or verdict.target is None:
        return {**result, "status": "done", "reason": "category_not_actionable"}

    target_text = verdict.target.prefixed_text(namespace_names[0])
    result["target"] = target_text
    pattern = build_category_pattern(namespace_names, identity.title)
    system_user = localizer.system_user_name()
    summary = localizer.edit_summary(language)
    category_page = corpus.get_page_for_link(identity.as_link())
    category_page_id = category_page.page_id if category_page is not None else None

    for page_id in corpus.pages_in_category(identity):
        if page_id == category_page_id:
            continue
        content = corpus.load_content(page_id)
        if content is None:
            continue
        if not content.is_text:
            result["skipped_non_text_page_ids"].append(page_id)
            continue

        original = content.text or ""
        rewritten = rewrite_category_links(original, pattern, target_text, preserve_annotation=preserve_annotation)
        if rewritten == original:
            result["unchanged_page_ids"].append(page_id)
            continue

        with tracer.start_as_current_span("recategorize.commit") as span:
            span.set_attribute("page.id", page_id)
            try:
                corpus.commit_revision(page_id, rewritten, user=system_user, summary=summary)
            except CorpusError as exc:
                logger.exception("recategorize commit failed for page_id=%s category=%s", page_id, identity.db_key)
                result["failed_page_ids"].append(page_id)
                result["error"] = str(exc)
                if failure_policy == "abort":
                    return {**result, "status": "failed", "reason": "commit_failed"}
                continue
        result["rewritten_page_ids"].append(page_id)

    if result["failed_page_ids"]:
        return {**result, "status": "failed", "reason": "commit_failed"}

    logger.info(
        "recategorized %s page(s) from %s to %s",
        len(result["rewritten_page_ids"]),
        identity.db_key,
        verdict.target.db_key,
    )
    return {**result, "status": "done", "reason": "recategorized"}


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None
