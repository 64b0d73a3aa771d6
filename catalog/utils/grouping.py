"""
Keyword bucketing of provider categories into navigation sections.

The search provider only exposes a flat list of category names; the
storefront navigation is rebuilt from it with simple keyword rules.
Categories that match no rule fall into the generic "Books" section.
"""

from typing import Dict, List

BOOKS = "Books"
CHILDRENS_BOOKS = "Children's Books"
FICTION = "Fiction"
NON_FICTION = "Non-Fiction"

SECTION_ORDER = [BOOKS, CHILDRENS_BOOKS, NON_FICTION, FICTION]

CHILDREN_KEYWORDS = ("child", "kid", "young")
NON_FICTION_KEYWORDS = ("non-fiction", "history", "biography")


def _is_childrens(name: str) -> bool:
    return any(keyword in name for keyword in CHILDREN_KEYWORDS)


def _is_fiction(name: str) -> bool:
    return "fiction" in name and "non" not in name


def _is_non_fiction(name: str) -> bool:
    return any(keyword in name for keyword in NON_FICTION_KEYWORDS)


def section_for_category(category_name: str) -> str:
    """Return the navigation section title a provider category belongs to."""
    lower = category_name.lower()
    if _is_childrens(lower):
        return CHILDRENS_BOOKS
    if _is_fiction(lower):
        return FICTION
    if _is_non_fiction(lower):
        return NON_FICTION
    return BOOKS


def group_categories_into_sections(categories: List[str]) -> Dict[str, List[str]]:
    """
    Bucket provider categories into navigation sections.

    Empty sections are dropped; section order is stable.
    """
    groups: Dict[str, List[str]] = {title: [] for title in SECTION_ORDER}
    for category in categories:
        if not category:
            continue
        groups[section_for_category(category)].append(category)

    return {title: names for title, names in groups.items() if names}


def filter_categories_for_section(section_title: str, categories: List[str]) -> List[str]:
    """
    Select the provider categories shown under a navigation section.

    Sections without a keyword rule (including "Books") list every category.
    """
    lower = section_title.lower()

    if "child" in lower:
        return [c for c in categories if _is_childrens(c.lower())]

    if lower == "fiction":
        return [c for c in categories if _is_fiction(c.lower())]

    if "non-fiction" in lower:
        return [c for c in categories if _is_non_fiction(c.lower())]

    return list(categories)
