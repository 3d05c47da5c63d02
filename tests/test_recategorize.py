from typing import Any

import pytest

from redirect_categories.jobs.recategorize import (
    build_category_pattern,
    execute_recategorize_pages,
    rewrite_category_links,
)
from redirect_categories.services.corpus import InMemoryCorpus

JOB = {
    "kind": "recategorize_pages",
    "target_type": "category",
    "target_id": "14:Old",
    "inputs_json": {"category_db_key": "Old", "namespace": 14},
}


@pytest.fixture
def corpus() -> InMemoryCorpus:
    corpus = InMemoryCorpus()
    corpus.add_page("Category:Old", "#REDIRECT [[Category:New]]", protected_actions={"edit"}, redirect_to="Category:New")
    corpus.add_page("Category:New", "")
    corpus.add_page("Page one", "Intro\n[[Category:Old]]")
    corpus.add_page("Page two", "[[Category:Old]] [[Category:Other]]")
    corpus.add_page("Page three", "[[category:Old]]")
    corpus.add_page("Page four", "[[Category:Old|Z]]")
    corpus.add_page("File:Scan.png", None, model="binary", categories=["Old"])
    return corpus


def _page_id(corpus: InMemoryCorpus, title: str) -> int:
    page = corpus.get_page_by_text(title)
    assert page is not None
    return page.page_id


def test_bulk_sweep_rewrites_text_pages_and_skips_binary(corpus: InMemoryCorpus) -> None:
    result = execute_recategorize_pages(JOB, corpus=corpus)

    assert result["status"] == "done"
    assert result["reason"] == "recategorized"
    assert result["category"] == "Category:Old"
    assert result["target"] == "Category:New"
    assert corpus.text_of("Page one") == "Intro\n[[Category:New]]"
    assert corpus.text_of("Page two") == "[[Category:New]] [[Category:Other]]"
    assert corpus.text_of("Page three") == "[[Category:New]]"
    assert corpus.text_of("Page four") == "[[Category:New|Z]]"
    assert corpus.text_of("File:Scan.png") is None
    assert result["skipped_non_text_page_ids"] == [_page_id(corpus, "File:Scan.png")]
    assert len(result["rewritten_page_ids"]) == 4
    assert {revision.user for revision in corpus.revisions} == {"RedirectThoseCategories"}
    assert {revision.summary for revision in corpus.revisions} == {"Recategorizing page from redirected category"}


def test_bulk_sweep_aborts_on_first_commit_failure(corpus: InMemoryCorpus) -> None:
    corpus.failing_page_ids.add(_page_id(corpus, "Page three"))

    result = execute_recategorize_pages(JOB, corpus=corpus)

    assert result["status"] == "failed"
    assert result["reason"] == "commit_failed"
    assert result["failed_page_ids"] == [_page_id(corpus, "Page three")]
    assert result["rewritten_page_ids"] == [_page_id(corpus, "Page one"), _page_id(corpus, "Page two")]
    assert corpus.text_of("Page one") == "Intro\n[[Category:New]]"
    assert corpus.text_of("Page two") == "[[Category:New]] [[Category:Other]]"
    assert corpus.text_of("Page three") == "[[category:Old]]"
    assert corpus.text_of("Page four") == "[[Category:Old|Z]]"
    assert "commit rejected" in result["error"]


def test_bulk_sweep_continue_policy_reports_failure_after_finishing(corpus: InMemoryCorpus) -> None:
    corpus.failing_page_ids.add(_page_id(corpus, "Page three"))

    result = execute_recategorize_pages(JOB, corpus=corpus, failure_policy="continue")

    assert result["status"] == "failed"
    assert result["failed_page_ids"] == [_page_id(corpus, "Page three")]
    assert len(result["rewritten_page_ids"]) == 3
    assert corpus.text_of("Page four") == "[[Category:New|Z]]"


def test_bulk_sweep_can_drop_sort_keys(corpus: InMemoryCorpus) -> None:
    result = execute_recategorize_pages(JOB, corpus=corpus, preserve_annotation=False)

    assert result["status"] == "done"
    assert corpus.text_of("Page four") == "[[Category:New]]"


def test_bulk_sweep_does_nothing_once_category_is_no_longer_a_protected_redirect(corpus: InMemoryCorpus) -> None:
    corpus.add_page("Category:Old", "#REDIRECT [[Category:New]]", redirect_to="Category:New")

    result = execute_recategorize_pages(JOB, corpus=corpus)

    assert result["status"] == "done"
    assert result["reason"] == "category_not_actionable"
    assert corpus.revisions == []


def test_bulk_sweep_refuses_double_redirect(corpus: InMemoryCorpus) -> None:
    corpus.add_page("Category:New", "", protected_actions={"edit"}, redirect_to="Category:Newest")

    result = execute_recategorize_pages(JOB, corpus=corpus)

    assert result["reason"] == "category_not_actionable"
    assert corpus.text_of("Page one") == "Intro\n[[Category:Old]]"


def test_bulk_sweep_requires_category_input(corpus: InMemoryCorpus) -> None:
    job: dict[str, Any] = {**JOB, "inputs_json": {}}

    result = execute_recategorize_pages(job, corpus=corpus)

    assert result["status"] == "failed"
    assert result["reason"] == "missing_category"


def test_bulk_sweep_leaves_pages_that_only_mention_similar_titles(corpus: InMemoryCorpus) -> None:
    corpus.add_page("Page five", "[[Category:Older]] [[Category:Old]]")

    execute_recategorize_pages(JOB, corpus=corpus)

    assert corpus.text_of("Page five") == "[[Category:Older]] [[Category:New]]"


def test_category_pattern_matches_spacing_and_case_variants() -> None:
    pattern = build_category_pattern(("Category", "category"), "Old name")

    assert pattern.fullmatch("[[Category:Old_name|k]]")
    assert pattern.fullmatch("[[ category: old name ]]")
    assert pattern.fullmatch("[[Category:Old name | sort ]]").groups() == ("|", "sort")
    assert not pattern.search("[[Category:Old names]]")
    assert not pattern.search("[[CATEGORY:Old name]]")


def test_rewrite_category_links_keeps_empty_separator() -> None:
    pattern = build_category_pattern(("Kategorie", "kategorie"), "Berg")

    rewritten = rewrite_category_links("[[kategorie:Berg|]] [[Kategorie:Berg| A ]]", pattern, "Kategorie:Gipfel")

    assert rewritten == "[[Kategorie:Gipfel|]] [[Kategorie:Gipfel|A]]"
