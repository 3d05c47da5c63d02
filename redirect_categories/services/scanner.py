from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from redirect_categories.core.i18n import lcfirst

LINK_OPEN = "[["
LINK_CLOSE = "]]"
ANNOTATION_SEPARATOR = "|"


@dataclass(frozen=True, slots=True)
class CategoryReference:
    full_match: str
    name_text: str
    annotation: str | None = None


def match_namespace_prefix(body: str, namespace_names: tuple[str, ...]) -> tuple[str, str] | None:
    """Match ``Ns:`` at the start of a link body.

    Returns ``(namespace_token, remainder)`` or ``None``. Only the first letter of
    the namespace may differ in case; the rest must match as written.
    """
    stripped = body.lstrip(" ")
    for name in namespace_names:
        token = f"{name}:"
        if stripped.startswith(token):
            return name, stripped[len(token) :]
    return None


def split_fields(remainder: str) -> tuple[str, str | None]:
    """Split ``name|annotation`` on the first separator; no separator means no annotation."""
    name, separator, annotation = remainder.partition(ANNOTATION_SEPARATOR)
    if not separator:
        return name.strip(" "), None
    return name.strip(" "), annotation.strip(" ")


class CategoryLinkScanner:
    def __init__(self, namespace_name: str, lower_first_name: str | None = None) -> None:
        names = [namespace_name, lower_first_name or lcfirst(namespace_name)]
        self.namespace_names: tuple[str, ...] = tuple(dict.fromkeys(names))

    @classmethod
    def from_names(cls, names: tuple[str, str]) -> CategoryLinkScanner:
        return cls(names[0], names[1])

    def scan(self, text: str) -> Iterator[CategoryReference]:
        position = 0
        while True:
            start = text.find(LINK_OPEN, position)
            if start < 0:
                return
            end = text.find(LINK_CLOSE, start + len(LINK_OPEN))
            if end < 0:
                return

            reference = self._parse(text[start : end + len(LINK_CLOSE)])
            if reference is None:
                position = start + 1
                continue
            yield reference
            position = end + len(LINK_CLOSE)

    def _parse(self, candidate: str) -> CategoryReference | None:
        body = candidate[len(LINK_OPEN) : -len(LINK_CLOSE)]
        if "\n" in body:
            return None
        prefix = match_namespace_prefix(body, self.namespace_names)
        if prefix is None:
            return None
        namespace_token, remainder = prefix
        name, annotation = split_fields(remainder)
        if not name:
            return None
        return CategoryReference(
            full_match=candidate,
            name_text=f"{namespace_token}:{name}",
            annotation=annotation,
        )
