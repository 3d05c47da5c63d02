from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Protocol

from redirect_categories.core.config import get_settings
from redirect_categories.core.i18n import Localizer
from redirect_categories.core.titles import CategoryIdentity, LinkTarget, identity_from_text, parse_title
from redirect_categories.services.scanner import CategoryLinkScanner

TEXT_CONTENT_MODELS = {"wikitext", "text", "css", "sanitized-css", "javascript", "json"}


class CorpusError(Exception):
    """Base corpus error."""


class CorpusUnavailableError(CorpusError):
    """Raised when the backing wiki cannot be reached or is not configured."""


class CorpusCommitError(CorpusError):
    """Raised when a new revision cannot be committed."""


@dataclass(frozen=True, slots=True)
class Page:
    page_id: int
    namespace: int
    title: str
    language: str | None = None

    @property
    def link(self) -> LinkTarget:
        return LinkTarget(namespace=self.namespace, title=self.title)


@dataclass(frozen=True, slots=True)
class PageContent:
    model: str
    text: str | None

    @property
    def is_text(self) -> bool:
        return self.model in TEXT_CONTENT_MODELS and self.text is not None


@dataclass(frozen=True, slots=True)
class Revision:
    page_id: int
    text: str
    user: str
    summary: str


class PageLookup(Protocol):
    def get_page_by_text(self, text: str) -> Page | None: ...

    def get_page_for_link(self, target: LinkTarget) -> Page | None: ...


class RestrictionStore(Protocol):
    def is_protected(self, page: Page, action: str) -> bool: ...


class RedirectLookup(Protocol):
    def get_redirect_target(self, page: Page) -> LinkTarget | None: ...


class CategoryIndex(Protocol):
    def pages_in_category(self, identity: CategoryIdentity) -> Sequence[int]: ...


class RevisionStore(Protocol):
    def load_content(self, page_id: int) -> PageContent | None: ...

    def commit_revision(self, page_id: int, text: str, *, user: str, summary: str) -> Revision: ...


class Corpus(PageLookup, RestrictionStore, RedirectLookup, CategoryIndex, RevisionStore, Protocol):
    def localizer(self) -> Localizer: ...


@dataclass(slots=True)
class _StoredPage:
    page: Page
    content: PageContent
    protected_actions: set[str] = field(default_factory=set)
    redirect: LinkTarget | None = None
    extra_categories: set[str] = field(default_factory=set)


class InMemoryCorpus:
    """Dict-backed corpus used in development and tests."""

    def __init__(self, localizer: Localizer | None = None) -> None:
        self._localizer = localizer or Localizer()
        self._pages: dict[int, _StoredPage] = {}
        self._by_key: dict[tuple[int, str], int] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self.revisions: list[Revision] = []
        self.failing_page_ids: set[int] = set()

    def localizer(self) -> Localizer:
        return self._localizer

    def add_page(
        self,
        title: str,
        text: str | None = "",
        *,
        model: str = "wikitext",
        protected_actions: Iterable[str] = (),
        redirect_to: str | None = None,
        categories: Iterable[str] = (),
        language: str | None = None,
    ) -> Page:
        target = self._parse(title)
        if target is None:
            raise ValueError(f"invalid title: {title!r}")
        redirect = self._parse(redirect_to) if redirect_to else None
        with self._lock:
            page_id = self._by_key.get((target.namespace, target.title))
            if page_id is None:
                page_id = self._next_id
                self._next_id += 1
            page = Page(page_id=page_id, namespace=target.namespace, title=target.title, language=language)
            self._pages[page_id] = _StoredPage(
                page=page,
                content=PageContent(model=model, text=text),
                protected_actions=set(protected_actions),
                redirect=redirect,
                extra_categories={identity.key for identity in map(CategoryIdentity.from_title, categories)},
            )
            self._by_key[(target.namespace, target.title)] = page_id
        return page

    def protect(self, title: str, action: str = "edit") -> None:
        stored = self._stored_by_text(title)
        if stored is not None:
            stored.protected_actions.add(action)

    def get_page_by_text(self, text: str) -> Page | None:
        stored = self._stored_by_text(text)
        return stored.page if stored is not None else None

    def get_page_for_link(self, target: LinkTarget) -> Page | None:
        page_id = self._by_key.get((target.namespace, target.title))
        return self._pages[page_id].page if page_id is not None else None

    def is_protected(self, page: Page, action: str) -> bool:
        stored = self._pages.get(page.page_id)
        return stored is not None and action in stored.protected_actions

    def get_redirect_target(self, page: Page) -> LinkTarget | None:
        stored = self._pages.get(page.page_id)
        return stored.redirect if stored is not None else None

    def pages_in_category(self, identity: CategoryIdentity) -> list[int]:
        scanner = CategoryLinkScanner.from_names(self._localizer.namespace_names())
        names = scanner.namespace_names
        members: list[int] = []
        for page_id, stored in self._pages.items():
            if identity.key in stored.extra_categories:
                members.append(page_id)
                continue
            if not stored.content.is_text:
                continue
            for reference in scanner.scan(stored.content.text or ""):
                if identity_from_text(reference.name_text, category_names=names) == identity:
                    members.append(page_id)
                    break
        return members

    def load_content(self, page_id: int) -> PageContent | None:
        stored = self._pages.get(page_id)
        return stored.content if stored is not None else None

    def commit_revision(self, page_id: int, text: str, *, user: str, summary: str) -> Revision:
        with self._lock:
            stored = self._pages.get(page_id)
            if stored is None:
                raise CorpusCommitError(f"page {page_id} does not exist")
            if page_id in self.failing_page_ids:
                raise CorpusCommitError(f"commit rejected for page {page_id}")
            stored.content = PageContent(model=stored.content.model, text=text)
            revision = Revision(page_id=page_id, text=text, user=user, summary=summary)
            self.revisions.append(revision)
        return revision

    def text_of(self, title: str) -> str | None:
        stored = self._stored_by_text(title)
        return stored.content.text if stored is not None else None

    def _stored_by_text(self, text: str) -> _StoredPage | None:
        target = self._parse(text)
        if target is None:
            return None
        page_id = self._by_key.get((target.namespace, target.title))
        return self._pages.get(page_id) if page_id is not None else None

    def _parse(self, text: str) -> LinkTarget | None:
        return parse_title(text, category_names=self._localizer.namespace_names())


@lru_cache
def get_corpus() -> Corpus:
    settings = get_settings()
    localizer = Localizer(
        default_locale=settings.content_language,
        namespace_overrides=(
            {settings.content_language: settings.category_namespace_name} if settings.category_namespace_name else {}
        ),
        message_overrides=_message_overrides(settings.system_user_name, settings.edit_summary),
    )
    if not settings.wiki_host:
        return InMemoryCorpus(localizer)

    from redirect_categories.services.mediawiki import MediaWikiCorpus

    try:
        return MediaWikiCorpus.from_settings(settings, localizer=localizer)
    except CorpusUnavailableError:
        raise
    except Exception as exc:  # mwclient raises a mix of requests and API errors on connect
        raise CorpusUnavailableError(f"cannot connect to wiki at {settings.wiki_host}: {exc}") from exc


def _message_overrides(system_user_name: str | None, edit_summary: str | None) -> dict[str, str]:
    overrides: dict[str, str] = {}
    if system_user_name:
        overrides["redirectthosecategories-user"] = system_user_name
    if edit_summary:
        overrides["redirectthosecategories-edit-summary"] = edit_summary
    return overrides