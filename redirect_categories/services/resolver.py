from __future__ import annotations

import logging
from dataclasses import dataclass

from redirect_categories.core.titles import NS_CATEGORY, CategoryIdentity, LinkTarget
from redirect_categories.services.corpus import CorpusError, Page, PageLookup, RedirectLookup, RestrictionStore

logger = logging.getLogger(__name__)

PROTECTED_ACTION = "edit"


@dataclass(frozen=True, slots=True)
class RedirectVerdict:
    exists: bool
    is_protected: bool = False
    target: CategoryIdentity | None = None
    target_is_double_redirect: bool = False

    @property
    def actionable(self) -> bool:
        return self.exists and self.is_protected and self.target is not None and not self.target_is_double_redirect


MISSING = RedirectVerdict(exists=False)


class RedirectResolver:
    """Answers whether a category is a protected, single-hop redirect to another category.

    Checks run cheapest first and stop at the first failing one. Verdicts are
    computed on every call; nothing is cached between calls.
    """

    def __init__(
        self,
        *,
        pages: PageLookup,
        redirects: RedirectLookup,
        restrictions: RestrictionStore,
    ) -> None:
        self.pages = pages
        self.redirects = redirects
        self.restrictions = restrictions

    def resolve(self, name_or_identity: str | CategoryIdentity) -> RedirectVerdict:
        try:
            if isinstance(name_or_identity, CategoryIdentity):
                page = self.pages.get_page_for_link(name_or_identity.as_link())
            else:
                page = self.pages.get_page_by_text(name_or_identity)
        except CorpusError as exc:
            logger.info("category lookup for %s failed, treating as missing: %s", name_or_identity, exc)
            return MISSING
        if page is None:
            return MISSING
        return self.resolve_page(page)

    def resolve_page(self, page: Page) -> RedirectVerdict:
        if not self.restrictions.is_protected(page, PROTECTED_ACTION):
            return RedirectVerdict(exists=True, is_protected=False)

        target = self.redirects.get_redirect_target(page)
        if target is None or target.namespace != NS_CATEGORY:
            return RedirectVerdict(exists=True, is_protected=True)

        return RedirectVerdict(
            exists=True,
            is_protected=True,
            target=CategoryIdentity.from_link(target),
            target_is_double_redirect=self.probe_redirect_target(target) is not None,
        )

    def probe_redirect_target(self, target: LinkTarget) -> LinkTarget | None:
        """Look one hop past ``target``; a failed lookup counts as no redirect."""
        try:
            page = self.pages.get_page_for_link(target)
            if page is None:
                return None
            return self.redirects.get_redirect_target(page)
        except CorpusError as exc:
            logger.info("redirect probe for %s failed, assuming single hop: %s", target.db_key, exc)
            return None
