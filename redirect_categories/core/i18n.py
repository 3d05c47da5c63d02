from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_LOCALE = "en"

CATEGORY_NAMESPACE_NAMES: dict[str, str] = {
    "en": "Category",
    "de": "Kategorie",
    "es": "Categoría",
    "fr": "Catégorie",
    "it": "Categoria",
    "ja": "カテゴリ",
    "nl": "Categorie",
    "pl": "Kategoria",
    "pt": "Categoria",
    "ru": "Категория",
    "sv": "Kategori",
    "zh": "Category",
}

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "redirectthosecategories-user": "RedirectThoseCategories",
        "redirectthosecategories-edit-summary": "Recategorizing page from redirected category",
    },
    "de": {
        "redirectthosecategories-edit-summary": "Seite aus weitergeleiteter Kategorie umkategorisiert",
    },
    "fr": {
        "redirectthosecategories-edit-summary": "Recatégorisation depuis une catégorie redirigée",
    },
}


def ucfirst(text: str) -> str:
    return text[:1].upper() + text[1:]


def lcfirst(text: str) -> str:
    return text[:1].lower() + text[1:]


def _base_locale(locale: str | None) -> str:
    if not locale:
        return DEFAULT_LOCALE
    return locale.strip().lower().replace("_", "-").split("-", maxsplit=1)[0] or DEFAULT_LOCALE


def message(key: str, locale: str | None = None) -> str:
    for candidate in (_base_locale(locale), DEFAULT_LOCALE):
        table = MESSAGES.get(candidate, {})
        if key in table:
            return table[key]
    raise KeyError(f"unknown message key: {key}")


@dataclass(slots=True)
class Localizer:
    """Per-locale category namespace names and system messages."""

    default_locale: str = DEFAULT_LOCALE
    namespace_overrides: dict[str, str] = field(default_factory=dict)
    message_overrides: dict[str, str] = field(default_factory=dict)

    def namespace_name(self, locale: str | None = None) -> str:
        base = _base_locale(locale or self.default_locale)
        if base in self.namespace_overrides:
            return self.namespace_overrides[base]
        return CATEGORY_NAMESPACE_NAMES.get(base, CATEGORY_NAMESPACE_NAMES[DEFAULT_LOCALE])

    def namespace_names(self, locale: str | None = None) -> tuple[str, str]:
        primary = self.namespace_name(locale)
        return primary, lcfirst(primary)

    def message(self, key: str, locale: str | None = None) -> str:
        if key in self.message_overrides:
            return self.message_overrides[key]
        return message(key, locale or self.default_locale)

    def system_user_name(self) -> str:
        return self.message("redirectthosecategories-user")

    def edit_summary(self, locale: str | None = None) -> str:
        return self.message("redirectthosecategories-edit-summary", locale)
