"""
Utility functions for the catalog application.

- staleness.py: TTL-based staleness checks
- normalization.py: slugs and scraped-value parsing
- grouping.py: keyword bucketing of provider categories into sections
"""

from .staleness import is_stale, seconds_until_stale
from .normalization import slugify
from .grouping import group_categories_into_sections, filter_categories_for_section

__all__ = [
    "is_stale",
    "seconds_until_stale",
    "slugify",
    "group_categories_into_sections",
    "filter_categories_for_section",
]
