from __future__ import annotations

import re
from dataclasses import dataclass

from redirect_categories.core.i18n import ucfirst

NS_MAIN = 0
NS_USER = 2
NS_PROJECT = 4
NS_FILE = 6
NS_TEMPLATE = 10
NS_HELP = 12
NS_CATEGORY = 14

CANONICAL_NAMESPACES: dict[str, int] = {
    "user": NS_USER,
    "project": NS_PROJECT,
    "file": NS_FILE,
    "image": NS_FILE,
    "template": NS_TEMPLATE,
    "help": NS_HELP,
    "category": NS_CATEGORY,
}

_WHITESPACE_RE = re.compile(r"[\s_]+")


def normalize_title(text: str) -> str:
    """Collapse ``_`` and whitespace runs to single spaces and upper-case the first letter."""
    collapsed = _WHITESPACE_RE.sub(" ", text).strip()
    return ucfirst(collapsed)


@dataclass(frozen=True, slots=True)
class LinkTarget:
    namespace: int
    title: str

    @property
    def db_key(self) -> str:
        return self.title.replace(" ", "_")


@dataclass(frozen=True, slots=True)
class CategoryIdentity:
    """Namespace plus normalized title; also the job dedupe key."""

    title: str
    namespace: int = NS_CATEGORY

    @classmethod
    def from_title(cls, title: str) -> CategoryIdentity:
        return cls(title=normalize_title(title))

    @classmethod
    def from_link(cls, target: LinkTarget) -> CategoryIdentity:
        return cls(title=normalize_title(target.title), namespace=target.namespace)

    @property
    def db_key(self) -> str:
        return self.title.replace(" ", "_")

    @property
    def key(self) -> str:
        return f"{self.namespace}:{self.db_key}"

    def prefixed_text(self, namespace_name: str) -> str:
        return f"{namespace_name}:{self.title}"

    def as_link(self) -> LinkTarget:
        return LinkTarget(namespace=self.namespace, title=self.title)


def parse_title(text: str, *, category_names: tuple[str, ...] = ()) -> LinkTarget | None:
    """Split ``Ns:Title`` text into a link target; namespace names match case-insensitively."""
    raw = _WHITESPACE_RE.sub(" ", text).strip()
    if raw.startswith(":"):
        raw = raw[1:].lstrip()
    if not raw:
        return None

    prefix, separator, rest = raw.partition(":")
    if separator:
        lowered = prefix.strip().lower()
        namespace = CANONICAL_NAMESPACES.get(lowered)
        if namespace is None and lowered in {name.lower() for name in category_names}:
            namespace = NS_CATEGORY
        if namespace is not None:
            title = normalize_title(rest)
            if not title:
                return None
            return LinkTarget(namespace=namespace, title=title)

    return LinkTarget(namespace=NS_MAIN, title=normalize_title(raw))


def identity_from_text(text: str, *, category_names: tuple[str, ...] = ()) -> CategoryIdentity | None:
    target = parse_title(text, category_names=category_names)
    if target is None or target.namespace != NS_CATEGORY:
        return None
    return CategoryIdentity.from_link(target)
