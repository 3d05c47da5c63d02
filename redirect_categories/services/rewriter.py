from __future__ import annotations

import logging
from dataclasses import dataclass, field

from redirect_categories.core.titles import CategoryIdentity
from redirect_categories.services.resolver import RedirectResolver
from redirect_categories.services.scanner import CategoryLinkScanner, CategoryReference

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Replacement:
    original: str
    replacement: str
    target: CategoryIdentity


@dataclass(slots=True)
class RewriteOutcome:
    text: str
    replacements: list[Replacement] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.replacements)


def build_reference(
    target: CategoryIdentity,
    annotation: str | None,
    *,
    namespace_name: str,
    keep_empty_annotation: bool = True,
) -> str:
    rendered = f"[[{target.prefixed_text(namespace_name)}"
    if annotation is not None and (annotation or keep_empty_annotation):
        rendered += f"|{annotation}"
    return rendered + "]]"


class InlineRewriter:
    """Rewrites category links in the document being saved, before the save commits."""

    def __init__(
        self,
        resolver: RedirectResolver,
        *,
        namespace_names: tuple[str, str],
        keep_empty_annotation: bool = True,
    ) -> None:
        self.resolver = resolver
        self.scanner = CategoryLinkScanner.from_names(namespace_names)
        self.namespace_name = namespace_names[0]
        self.keep_empty_annotation = keep_empty_annotation

    def rewrite(self, text: str) -> str:
        return self.rewrite_text(text).text

    def rewrite_text(self, text: str) -> RewriteOutcome:
        outcome = RewriteOutcome(text=text)
        seen: set[str] = set()
        for reference in self.scanner.scan(text):
            if reference.full_match in seen:
                continue
            seen.add(reference.full_match)

            replacement = self._replacement_for(reference)
            if replacement is None or replacement.replacement == reference.full_match:
                continue
            outcome.text = outcome.text.replace(reference.full_match, replacement.replacement)
            outcome.replacements.append(replacement)
        return outcome

    def _replacement_for(self, reference: CategoryReference) -> Replacement | None:
        verdict = self.resolver.resolve(reference.name_text)
        if verdict.target_is_double_redirect:
            logger.warning("category %s is a double redirect; leaving link unchanged", reference.name_text)
            return None
        if not verdict.actionable or verdict.target is None:
            return None
        return Replacement(
            original=reference.full_match,
            replacement=build_reference(
                verdict.target,
                reference.annotation,
                namespace_name=self.namespace_name,
                keep_empty_annotation=self.keep_empty_annotation,
            ),
            target=verdict.target,
        )
