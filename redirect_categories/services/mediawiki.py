from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import mwclient
from mwclient.errors import APIError, InvalidPageTitle, MwClientError

from redirect_categories.core.config import Settings
from redirect_categories.core.i18n import Localizer
from redirect_categories.core.titles import NS_CATEGORY, CategoryIdentity, LinkTarget, normalize_title
from redirect_categories.services.corpus import (
    TEXT_CONTENT_MODELS,
    CorpusCommitError,
    CorpusUnavailableError,
    Page,
    PageContent,
    Revision,
)

logger = logging.getLogger(__name__)


@contextmanager
def _wiki_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except InvalidPageTitle:
        raise
    except MwClientError as exc:
        raise CorpusUnavailableError(f"{operation} failed: {exc}") from exc


class MediaWikiCorpus:
    """Corpus collaborators backed by a live wiki through mwclient.

    Commits are attributed to whichever account the site is logged in as; that
    bot account is the system identity for bulk edits.
    """

    def __init__(self, site: Any, *, localizer: Localizer | None = None) -> None:
        self.site = site
        self._localizer = localizer or Localizer()
        self._titles_by_id: dict[int, str] = {}
        namespaces = getattr(site, "namespaces", None) or {}
        category_name = namespaces.get(NS_CATEGORY)
        if category_name and self._localizer.default_locale not in self._localizer.namespace_overrides:
            self._localizer.namespace_overrides[self._localizer.default_locale] = category_name

    @classmethod
    def from_settings(cls, settings: Settings, *, localizer: Localizer | None = None) -> MediaWikiCorpus:
        if not settings.wiki_host:
            raise CorpusUnavailableError("wiki_host is not configured")
        site = mwclient.Site(
            settings.wiki_host,
            path=settings.wiki_path,
            scheme=settings.wiki_scheme,
            clients_useragent=settings.wiki_user_agent,
        )
        if settings.wiki_username and settings.wiki_password:
            site.login(settings.wiki_username, settings.wiki_password)
        return cls(site, localizer=localizer)

    def localizer(self) -> Localizer:
        return self._localizer

    def get_page_by_text(self, text: str) -> Page | None:
        mw_page = self._fetch(text)
        if mw_page is None:
            return None
        return self._to_page(mw_page)

    def get_page_for_link(self, target: LinkTarget) -> Page | None:
        return self.get_page_by_text(self._prefixed(target))

    def is_protected(self, page: Page, action: str) -> bool:
        mw_page = self._fetch(self._prefixed(page.link))
        if mw_page is None:
            return False
        with _wiki_errors(f"protection lookup of {mw_page.name}"):
            protection = getattr(mw_page, "protection", None) or {}
        return action in protection

    def get_redirect_target(self, page: Page) -> LinkTarget | None:
        mw_page = self._fetch(self._prefixed(page.link))
        if mw_page is None:
            return None
        try:
            with _wiki_errors(f"redirect lookup of {mw_page.name}"):
                if not mw_page.redirect:
                    return None
                target = mw_page.resolve_redirect()
        except InvalidPageTitle:
            logger.info("redirect of %s points at an invalid title", mw_page.name)
            return None
        if target is None or target.name == mw_page.name:
            return None
        return LinkTarget(namespace=int(target.namespace), title=normalize_title(target.page_title))

    def pages_in_category(self, identity: CategoryIdentity) -> list[int]:
        category_title = identity.prefixed_text(self._localizer.namespace_name())
        page_ids: list[int] = []
        params: dict[str, Any] = {
            "list": "categorymembers",
            "cmtitle": category_title,
            "cmprop": "ids|title",
            "cmlimit": "max",
        }
        while True:
            try:
                data = self.site.api("query", **params)
            except APIError as exc:
                raise CorpusUnavailableError(f"categorymembers query failed for {category_title}: {exc.code}") from exc
            for member in data.get("query", {}).get("categorymembers", []):
                page_id = int(member["pageid"])
                self._titles_by_id[page_id] = member["title"]
                page_ids.append(page_id)
            if "continue" not in data:
                break
            params.update(data["continue"])
        return page_ids

    def load_content(self, page_id: int) -> PageContent | None:
        mw_page = self._mw_page_by_id(page_id)
        if mw_page is None:
            return None
        model = getattr(mw_page, "contentmodel", None) or "wikitext"
        with _wiki_errors(f"content load of {mw_page.name}"):
            text = mw_page.text() if model in TEXT_CONTENT_MODELS else None
        return PageContent(model=model, text=text)

    def commit_revision(self, page_id: int, text: str, *, user: str, summary: str) -> Revision:
        mw_page = self._mw_page_by_id(page_id)
        if mw_page is None:
            raise CorpusCommitError(f"page {page_id} does not exist")
        logged_in_as = getattr(self.site, "username", None)
        if logged_in_as and logged_in_as != user:
            logger.warning("committing as %s instead of system user %s", logged_in_as, user)
        try:
            mw_page.edit(text, summary=summary, bot=True)
        except MwClientError as exc:
            raise CorpusCommitError(f"edit of page {page_id} failed: {exc}") from exc
        return Revision(page_id=page_id, text=text, user=logged_in_as or user, summary=summary)

    def _to_page(self, mw_page: Any) -> Page:
        page_id = int(mw_page.pageid)
        self._titles_by_id[page_id] = mw_page.name
        return Page(
            page_id=page_id,
            namespace=int(mw_page.namespace),
            title=normalize_title(mw_page.page_title),
            language=getattr(mw_page, "pagelanguage", None),
        )

    def _fetch(self, title: str) -> Any | None:
        """The existing wiki page called ``title``; invalid titles are a miss."""
        try:
            with _wiki_errors(f"lookup of {title}"):
                mw_page = self.site.pages[title]
                exists = mw_page.exists
        except InvalidPageTitle:
            logger.info("ignoring invalid page title %r", title)
            return None
        return mw_page if exists else None

    def _mw_page_by_id(self, page_id: int) -> Any | None:
        title = self._titles_by_id.get(page_id)
        if title is None:
            with _wiki_errors(f"lookup of page {page_id}"):
                data = self.site.api("query", pageids=page_id, prop="info")
            info = data.get("query", {}).get("pages", {}).get(str(page_id), {})
            if "missing" in info or "title" not in info:
                return None
            title = info["title"]
            self._titles_by_id[page_id] = title
        return self._fetch(title)

    def _prefixed(self, target: LinkTarget) -> str:
        if target.namespace == NS_CATEGORY:
            return f"{self._localizer.namespace_name()}:{target.title}"
        namespaces = getattr(self.site, "namespaces", None) or {}
        prefix = namespaces.get(target.namespace, "")
        return f"{prefix}:{target.title}" if prefix else target.title
