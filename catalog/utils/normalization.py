"""
Text and value normalization helpers shared by the source adapters and
the orchestrator.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def slugify(text: str) -> str:
    """
    Build a deterministic URL slug.

    Lower-cases, drops apostrophes, replaces every run of
    non-alphanumeric characters with a single hyphen and trims hyphens
    from both ends.

    Example:
        >>> slugify("Children's Books")
        'childrens-books'
        >>> slugify("  Sci-Fi!! ")
        'sci-fi'
    """
    if not text:
        return ""

    result = text.lower()
    result = re.sub(r"['‘’`]", "", result)
    result = re.sub(r"[^a-z0-9]+", "-", result)
    return result.strip("-")


def clean_text(value: Any) -> str:
    """Collapse whitespace in scraped text; non-strings become ''."""
    if not isinstance(value, str):
        return ""
    return re.sub(r"\s+", " ", value).strip()


def parse_int(value: Any, default: int = 0) -> int:
    """Pull the digits out of text like '(1,234 reviews)'."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    digits = re.sub(r"\D", "", str(value or ""))
    if not digits:
        return default
    return int(digits)


def parse_rating(value: Any) -> Optional[float]:
    """Parse a 0-5 rating from text like '4.5 out of 5'; None if absent or out of range."""
    if value is None:
        return None
    match = re.search(r"\d+(?:[.,]\d+)?", str(value))
    if not match:
        return None
    rating = float(match.group(0).replace(",", "."))
    if rating < 0 or rating > 5:
        return None
    return rating


def parse_price(value: Any) -> Optional[Decimal]:
    """Convert a provider price to a non-negative Decimal (None when missing or invalid)."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        return None
    if price < 0:
        return None
    return price
