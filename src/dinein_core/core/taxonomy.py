"""Coarse category groups derived from free-text category names.

Rules are tested in order and the first match wins. A category can match
several keywords ("Breakfast Combo" hits both "breakfast" and "combo"), so the
order of CATEGORY_GROUP_RULES is part of the contract.
"""

from __future__ import annotations

DRINKS = "Drinks"
DESSERTS = "Desserts"
STARTERS_SIDES = "Starters & Sides"
KIDS = "Kids"
AYCE = "AYCE"
ADD_ONS = "Add-ons"
MAINS = "Mains"
OTHER_GROUP = "Other"

CATEGORY_GROUP_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (DRINKS, ("coffee", "tea", "juice", "smoothie", "mocktail", "drinks", "fresh juices")),
    (DESSERTS, ("dessert", "pastry", "cake", "viennoserie")),
    (STARTERS_SIDES, ("starter", "soup", "appetizer", "sides", "fries")),
    (KIDS, ("kids", "kid's")),
    (AYCE, ("ayce", "all-you-can")),
    (ADD_ONS, ("add-on", "addon", "add on")),
    (
        MAINS,
        (
            "breakfast",
            "main",
            "sandwich",
            "salad",
            "bowl",
            "burger",
            "fit fuel",
            "combo",
            "special",
        ),
    ),
)

# Per-order item mix columns, keyed by group
MIX_GROUPS = {
    MAINS: "mains",
    DRINKS: "drinks",
    STARTERS_SIDES: "sides",
    DESSERTS: "desserts",
    KIDS: "kids",
}


def category_group(category: str | None) -> str:
    """Map a category name to its coarse group.

    Args:
        category: Category name as exported (any case, may be empty).

    Returns:
        Group name, ``"Other"`` when no rule matches.

    Examples:
        >>> category_group("Fresh Juices")
        'Drinks'
        >>> category_group("Breakfast Combo")
        'Mains'
        >>> category_group(None)
        'Other'
    """
    cat = (category or "").lower()
    for group, keywords in CATEGORY_GROUP_RULES:
        if any(keyword in cat for keyword in keywords):
            return group
    return OTHER_GROUP
