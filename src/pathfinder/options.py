"""
Planning options catalog.

The moods, budgets, durations, group sizes and place types offered when
planning a trip. Built-in defaults are always available; the remote
itinerary_options catalog replaces them category by category when it is
reachable and has rows.
"""

import logging

from pathfinder.db.remote import RemoteStoreAdapter
from pathfinder.errors import InputValidationError
from pathfinder.models import ItineraryOption, OptionCategory

logger = logging.getLogger(__name__)

OptionCatalog = dict[OptionCategory, list[ItineraryOption]]


def _plain(category: OptionCategory, labels: list[str]) -> list[ItineraryOption]:
    return [
        ItineraryOption(category=category, label=label, value=label, sort_order=(n + 1) * 10)
        for n, label in enumerate(labels)
    ]


DEFAULT_OPTIONS: OptionCatalog = {
    OptionCategory.MOOD: _plain(OptionCategory.MOOD, ["Romantic", "Adventure", "Chill", "Party", "Culture"]),
    OptionCategory.BUDGET: _plain(OptionCategory.BUDGET, ["$", "$$", "$$$", "$$$$"]),
    OptionCategory.DURATION: _plain(OptionCategory.DURATION, ["Quick Trip", "Half Day", "Full Day", "Multi-Day"]),
    OptionCategory.GROUP: _plain(OptionCategory.GROUP, ["Solo", "Couple", "Family", "Friends"]),
    OptionCategory.TYPE: [
        ItineraryOption(category=OptionCategory.TYPE, label=label, value=value, icon=icon, sort_order=(n + 1) * 10)
        for n, (label, value, icon) in enumerate(
            [
                ("Dining", "Restaurant", "Utensils"),
                ("Drinks", "Bar", "Coffee"),
                ("Shopping", "Shopping", "ShoppingBag"),
                ("Culture", "Museum", "Camera"),
                ("Nature", "Park", "MapPin"),
                ("Nightlife", "Club", "Music"),
            ]
        )
    ],
}


def default_catalog() -> OptionCatalog:
    return {category: [o.model_copy() for o in options] for category, options in DEFAULT_OPTIONS.items()}


async def load_options(remote: RemoteStoreAdapter | None = None, category: OptionCategory | None = None) -> OptionCatalog:
    """
    The catalog to plan with.

    Falls back to the defaults when the remote is absent, down or empty.
    Categories the remote has no active rows for keep their defaults.
    """
    catalog = default_catalog()
    if category is not None:
        catalog = {category: catalog[category]}
    if remote is None:
        return catalog

    result = await remote.fetch_options(category.value if category else None)
    if not result.ok:
        logger.warning(f"Option catalog unavailable, using defaults: {result.error}")
        return catalog

    fetched: OptionCatalog = {}
    for option in result.data or []:
        if option.is_active and option.category in catalog:
            fetched.setdefault(option.category, []).append(option)
    for key, options in fetched.items():
        catalog[key] = sorted(options, key=lambda o: o.sort_order)
    return catalog


def resolve_place_types(catalog: OptionCatalog, requested: list[str]) -> list[str]:
    """
    Map place types given by label or value to catalog values.

    Matching ignores case. Unknown types raise InputValidationError.
    """
    known: dict[str, str] = {}
    for option in catalog.get(OptionCategory.TYPE, []):
        known[option.value.lower()] = option.value
        known.setdefault(option.label.lower(), option.value)

    resolved = []
    for name in requested:
        value = known.get(name.strip().lower())
        if value is None:
            choices = ", ".join(sorted({o.value for o in catalog.get(OptionCategory.TYPE, [])}))
            raise InputValidationError(f"Unknown place type {name!r} (choose from: {choices})")
        if value not in resolved:
            resolved.append(value)
    return resolved
