"""Keyword-table product categorizer.

Maps a free-text product/service description to exactly one tag from a fixed
taxonomy. Tables are ordered; the first category whose keyword appears in the
description (case-insensitive substring) wins, so "iced coffee" is a drink
before any food keyword is tested. Add keywords here, not in control flow.
"""

from __future__ import annotations

from typing import Any, Sequence

from pos_ingest.models import Platform

# (category, keywords), in priority order
Taxonomy = Sequence[tuple[str, Sequence[str]]]

CAFE_DEFAULT = "Other"
SERVICE_DEFAULT = "Other Services"

CAFE_CATEGORIES: Taxonomy = (
    (
        "Drinks",
        (
            "coffee", "tea", "latte", "cappuccino", "espresso", "mocha", "americano",
            "juice", "smoothie", "shake", "water", "soda", "cola", "drink", "beverage",
            "beer", "wine", "hot chocolate", "iced", "frappe", "milkshake",
        ),
    ),
    (
        "Food",
        (
            "sandwich", "burger", "pizza", "salad", "cake", "pastry", "muffin",
            "cookie", "brownie", "toast", "bagel", "croissant", "panini", "wrap",
            "breakfast", "lunch",
        ),
    ),
)

SERVICE_CATEGORIES: Taxonomy = (
    ("Haircut", ("haircut", "hair cut", "trim")),
    ("Hair Color", ("color", "colour", "dye", "highlight")),
    ("Styling", ("style", "styling", "blow dry", "blowdry")),
    ("Treatment", ("perm", "straighten", "keratin")),
    ("Facial", ("facial", "face")),
    ("Massage", ("massage",)),
    ("Nail Care", ("nail", "manicure", "pedicure")),
    ("Hair Removal", ("wax", "threading")),
    ("Makeup", ("makeup", "make up")),
    ("Extensions", ("extension", "wig")),
    ("Consultation", ("consultation", "consult")),
    ("Products", ("product", "retail")),
)

TAXONOMIES: dict[Platform, tuple[Taxonomy, str]] = {
    Platform.TAKEMYPAYMENTS: (CAFE_CATEGORIES, CAFE_DEFAULT),
    Platform.BOOKER: (SERVICE_CATEGORIES, SERVICE_DEFAULT),
}


def categorize(description: Any, taxonomy: Taxonomy, default: str) -> str:
    """Return the first category whose keyword occurs in the description.

    Examples:
        >>> categorize("Iced Coffee", CAFE_CATEGORIES, CAFE_DEFAULT)
        'Drinks'
        >>> categorize("Full Highlights & Cut", SERVICE_CATEGORIES, SERVICE_DEFAULT)
        'Hair Color'
    """
    text = str(description or "").lower()
    if not text:
        return default
    for category, keywords in taxonomy:
        for keyword in keywords:
            if keyword in text:
                return category
    return default


def categorize_for_platform(description: Any, platform: Platform) -> str:
    """Categorize using the taxonomy of the given platform."""
    taxonomy, default = taxonomy_for(platform)
    return categorize(description, taxonomy, default)


def categories_for_platform(platform: Platform) -> list[str]:
    """All tags a platform can produce, default last."""
    taxonomy, default = taxonomy_for(platform)
    return [category for category, _ in taxonomy] + [default]


def taxonomy_for(platform: Platform) -> tuple[Taxonomy, str]:
    """(taxonomy, default tag) used for a platform."""
    return TAXONOMIES[Platform.coerce(platform)]
