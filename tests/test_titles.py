from redirect_categories.core.titles import (
    NS_CATEGORY,
    NS_HELP,
    NS_MAIN,
    NS_TEMPLATE,
    CategoryIdentity,
    LinkTarget,
    identity_from_text,
    normalize_title,
    parse_title,
)


def test_normalize_title_collapses_underscores_and_capitalizes() -> None:
    assert normalize_title("  foo__bar  baz ") == "Foo bar baz"


def test_parse_title_recognizes_namespaces_case_insensitively() -> None:
    assert parse_title("category:Old_name") == LinkTarget(namespace=NS_CATEGORY, title="Old name")
    assert parse_title(":Category: old") == LinkTarget(namespace=NS_CATEGORY, title="Old")
    assert parse_title("TEMPLATE:Infobox") == LinkTarget(namespace=NS_TEMPLATE, title="Infobox")
    assert parse_title("Help:Contents") == LinkTarget(namespace=NS_HELP, title="Contents")
    assert parse_title("Some page") == LinkTarget(namespace=NS_MAIN, title="Some page")
    assert parse_title("Category:") is None


def test_parse_title_uses_localized_category_names() -> None:
    target = parse_title("kategorie:Berg", category_names=("Kategorie", "kategorie"))

    assert target == LinkTarget(namespace=NS_CATEGORY, title="Berg")
    assert parse_title("Kategorie:Berg") == LinkTarget(namespace=NS_MAIN, title="Kategorie:Berg")


def test_category_identity_keys() -> None:
    identity = CategoryIdentity.from_title("old_name")

    assert identity.title == "Old name"
    assert identity.db_key == "Old_name"
    assert identity.key == "14:Old_name"
    assert identity.prefixed_text("Kategorie") == "Kategorie:Old name"
    assert identity_from_text("[category: old name", category_names=()) is None
    assert identity_from_text("category: old name") == identity
