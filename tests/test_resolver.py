from redirect_categories.core.titles import CategoryIdentity, LinkTarget
from redirect_categories.services.corpus import CorpusUnavailableError, InMemoryCorpus
from redirect_categories.services.resolver import RedirectResolver, RedirectVerdict


def _resolver(corpus: InMemoryCorpus) -> RedirectResolver:
    return RedirectResolver(pages=corpus, redirects=corpus, restrictions=corpus)


def _redirect_corpus() -> InMemoryCorpus:
    corpus = InMemoryCorpus()
    corpus.add_page(
        "Category:Old",
        "#REDIRECT [[Category:New]]",
        protected_actions={"edit"},
        redirect_to="Category:New",
    )
    corpus.add_page("Category:New", "Category description")
    return corpus


def test_resolve_protected_single_hop_redirect() -> None:
    verdict = _resolver(_redirect_corpus()).resolve("Category:Old")

    assert verdict == RedirectVerdict(
        exists=True,
        is_protected=True,
        target=CategoryIdentity(title="New"),
        target_is_double_redirect=False,
    )
    assert verdict.actionable


def test_resolve_accepts_identity_and_lower_first_names() -> None:
    resolver = _resolver(_redirect_corpus())

    assert resolver.resolve(CategoryIdentity.from_title("Old")).actionable
    assert resolver.resolve("category:old").actionable


def test_resolve_missing_category() -> None:
    verdict = _resolver(_redirect_corpus()).resolve("Category:Nope")

    assert verdict == RedirectVerdict(exists=False)
    assert not verdict.actionable


def test_resolve_stops_at_unprotected_category() -> None:
    corpus = InMemoryCorpus()
    corpus.add_page("Category:Old", "#REDIRECT [[Category:New]]", redirect_to="Category:New")

    verdict = _resolver(corpus).resolve("Category:Old")

    assert verdict == RedirectVerdict(exists=True, is_protected=False)


def test_resolve_ignores_redirect_out_of_category_namespace() -> None:
    corpus = InMemoryCorpus()
    corpus.add_page("Category:Old", "#REDIRECT [[Help:Categories]]", protected_actions={"edit"}, redirect_to="Help:Categories")

    verdict = _resolver(corpus).resolve("Category:Old")

    assert verdict.exists and verdict.is_protected
    assert verdict.target is None
    assert not verdict.actionable


def test_resolve_only_counts_edit_protection() -> None:
    corpus = InMemoryCorpus()
    corpus.add_page("Category:Old", "", protected_actions={"move"}, redirect_to="Category:New")

    assert not _resolver(corpus).resolve("Category:Old").is_protected


def test_resolve_flags_double_redirect_without_following_it() -> None:
    corpus = InMemoryCorpus()
    corpus.add_page("Category:A", "", protected_actions={"edit"}, redirect_to="Category:B")
    corpus.add_page("Category:B", "", protected_actions={"edit"}, redirect_to="Category:C")
    corpus.add_page("Category:C", "")

    verdict = _resolver(corpus).resolve("Category:A")

    assert verdict.target == CategoryIdentity(title="B")
    assert verdict.target_is_double_redirect
    assert not verdict.actionable


def test_resolve_self_redirect_is_a_double_redirect() -> None:
    corpus = InMemoryCorpus()
    corpus.add_page("Category:Loop", "", protected_actions={"edit"}, redirect_to="Category:Loop")

    assert _resolver(corpus).resolve("Category:Loop").target_is_double_redirect


def test_resolve_treats_missing_target_page_as_single_hop() -> None:
    corpus = InMemoryCorpus()
    corpus.add_page("Category:Old", "", protected_actions={"edit"}, redirect_to="Category:Not yet created")

    verdict = _resolver(corpus).resolve("Category:Old")

    assert verdict.target == CategoryIdentity(title="Not yet created")
    assert verdict.actionable


def test_resolve_treats_failed_probe_as_single_hop() -> None:
    class FlakyCorpus(InMemoryCorpus):
        def get_page_for_link(self, target: LinkTarget):
            raise CorpusUnavailableError("lookup timed out")

    corpus = FlakyCorpus()
    corpus.add_page("Category:Old", "", protected_actions={"edit"}, redirect_to="Category:New")

    verdict = _resolver(corpus).resolve("Category:Old")

    assert verdict.actionable


def test_resolve_is_not_cached_between_calls() -> None:
    corpus = _redirect_corpus()
    resolver = _resolver(corpus)
    assert resolver.resolve("Category:Old").actionable

    corpus.add_page("Category:Old", "Plain category again")

    assert not resolver.resolve("Category:Old").actionable


def test_resolve_treats_failed_category_lookup_as_missing() -> None:
    class UnreachableCorpus(InMemoryCorpus):
        def get_page_by_text(self, text: str):
            raise CorpusUnavailableError("lookup timed out")

    verdict = _resolver(UnreachableCorpus()).resolve("Category:Old")

    assert verdict == RedirectVerdict(exists=False)
