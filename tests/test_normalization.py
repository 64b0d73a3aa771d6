"""
Tests for slug derivation and scraped value parsing.
"""

from decimal import Decimal

import pytest

from catalog.utils.normalization import clean_text, parse_int, parse_price, parse_rating, slugify


class TestSlugify:
    """Tests for slugify()."""

    def test_apostrophe_is_dropped(self):
        assert slugify("Children's Books") == "childrens-books"

    def test_punctuation_and_whitespace_trimmed(self):
        assert slugify("  Sci-Fi!! ") == "sci-fi"

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Fiction", "fiction"),
            ("Non-Fiction", "non-fiction"),
            ("Art & Photography", "art-photography"),
            ("Biography & Autobiography", "biography-autobiography"),
            ("Self-Help", "self-help"),
            ("--Already--slugged--", "already-slugged"),
            ("Book 2 of 3", "book-2-of-3"),
            ("", ""),
        ],
    )
    def test_known_titles(self, text, expected):
        assert slugify(text) == expected

    def test_deterministic(self):
        """The same title always yields the same slug."""
        assert slugify("Crime & Thriller") == slugify("Crime & Thriller")

    def test_curly_apostrophe(self):
        assert slugify("Children’s Books") == "childrens-books"


class TestParsers:
    """Tests for the value parsers."""

    def test_clean_text_collapses_whitespace(self):
        assert clean_text("  A\n  long\ttitle ") == "A long title"
        assert clean_text(None) == ""
        assert clean_text(42) == ""

    @pytest.mark.parametrize(
        "value,expected",
        [("(1,234 reviews)", 1234), ("12", 12), (7, 7), ("none", 0), (None, 0), (True, 0)],
    )
    def test_parse_int(self, value, expected):
        assert parse_int(value) == expected

    def test_parse_int_default(self):
        assert parse_int("n/a", default=-1) == -1

    @pytest.mark.parametrize(
        "value,expected",
        [("4.5 out of 5", 4.5), ("3,8", 3.8), ("5", 5.0), ("0", 0.0), (4, 4.0)],
    )
    def test_parse_rating(self, value, expected):
        assert parse_rating(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", [None, "", "no rating", "9.5", "6 stars"])
    def test_parse_rating_rejects_missing_or_out_of_range(self, value):
        assert parse_rating(value) is None

    def test_parse_price(self):
        assert parse_price(8.99) == Decimal("8.99")
        assert parse_price("10") == Decimal("10.00")
        assert parse_price(3.456) == Decimal("3.46")

    @pytest.mark.parametrize("value", [None, "", "free", -1, True])
    def test_parse_price_rejects_invalid(self, value):
        assert parse_price(value) is None
