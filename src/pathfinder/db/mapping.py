"""
Nested <-> relational mapping for itineraries and profiles.

An Itinerary is stored as three kinds of rows:
- itineraries: the header (title/date/mood/tags/flags)
- places: catalog entries, upserted by name and shared across itineraries
- itinerary_items: item-links joining the two, with per-visit metadata and
  an explicit order_index

Everything here is pure so the write order and the join/sort logic can be
tested without a database.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from pathfinder.models import Itinerary, ItineraryItem, UserProfile, UserReview

logger = logging.getLogger(__name__)

UNKNOWN_PLACE = "Unknown"

# PostgREST embedded selects
ITINERARY_SELECT = "*, itinerary_items(*, places(*))"
PUBLIC_ITINERARY_SELECT = "*, profiles(name), itinerary_items(*, places(*))"

PROFILE_PREFERENCE_FIELDS = ("name", "city", "personality", "role", "created_at")


@dataclass
class RelationalItinerary:
    """
    One itinerary split into rows, in write order.

    links still carry place_name; resolve_links() swaps it for place_id once
    the catalog ids are known.
    """

    header: dict[str, Any]
    places: list[dict[str, Any]] = field(default_factory=list)
    links: list[dict[str, Any]] = field(default_factory=list)

    @property
    def place_names(self) -> list[str]:
        return [p["name"] for p in self.places]


def to_relational(itinerary: Itinerary, user_id: str) -> RelationalItinerary:
    """Denormalize one itinerary. The id must already be a valid UUID."""
    header = {
        "id": itinerary.id,
        "user_id": user_id,
        "title": itinerary.title,
        "date": itinerary.date,
        "mood": itinerary.mood,
        "tags": list(itinerary.tags),
        "is_public": itinerary.shared,
        "likes_count": itinerary.likes,
        "verified_community": itinerary.verified_community,
        # Column added to the itineraries table for the featured badge
        "featured": itinerary.featured,
    }

    # One place row per name; a repeated stop keeps the last metadata seen,
    # the same outcome as upserting each stop in turn.
    places: dict[str, dict[str, Any]] = {}
    links = []
    for index, item in enumerate(itinerary.items):
        place = item.to_place()
        places[place.name] = {
            "name": place.name,
            "category": place.category,
            "rating": place.rating,
            "review_count": place.review_count,
            "price": place.price,
            "image_url": place.image_url,
            "verified": place.verified,
        }
        links.append(
            {
                "itinerary_id": itinerary.id,
                "place_name": item.location_name,
                "time": item.time,
                "activity": item.activity,
                "description": item.description,
                "order_index": index,
                "completed": item.completed,
                "user_review": item.user_review.model_dump() if item.user_review else None,
            }
        )

    return RelationalItinerary(header=header, places=list(places.values()), links=links)


def resolve_links(links: list[dict[str, Any]], place_ids: dict[str, Any]) -> list[dict[str, Any]]:
    """Swap place_name for place_id. Unresolved names insert a null place_id."""
    resolved = []
    for link in links:
        row = {k: v for k, v in link.items() if k != "place_name"}
        place_id = place_ids.get(link["place_name"])
        if place_id is None:
            logger.warning(f"No catalog id for place '{link['place_name']}'")
        row["place_id"] = place_id
        resolved.append(row)
    return resolved


def _item_from_link(link: dict[str, Any]) -> ItineraryItem:
    place = link.get("places") or {}
    review = None
    if link.get("user_review"):
        try:
            review = UserReview.model_validate(link["user_review"])
        except ValidationError:
            logger.warning("Dropping malformed user_review on item-link")
    return ItineraryItem(
        time=link.get("time") or "",
        activity=link.get("activity") or "",
        location_name=place.get("name") or UNKNOWN_PLACE,
        description=link.get("description") or "",
        verified=bool(place.get("verified")),
        category=place.get("category") or "Activity",
        rating=place.get("rating") or 0.0,
        review_count=place.get("review_count") or 0,
        price=place.get("price") or "$$",
        image_url=place.get("image_url"),
        completed=bool(link.get("completed")),
        user_review=review,
    )


def from_relational(row: dict[str, Any]) -> Itinerary:
    """Flatten a joined itinerary row back into the nested shape."""
    links = sorted(
        row.get("itinerary_items") or [],
        key=lambda link: link.get("order_index") or 0,
    )
    author = (row.get("profiles") or {}).get("name")
    return Itinerary(
        id=str(row["id"]),
        title=row.get("title") or "",
        date=row.get("date") or "",
        mood=row.get("mood") or "",
        tags=row.get("tags") or [],
        items=[_item_from_link(link) for link in links],
        author=author,
        likes=row.get("likes_count") or 0,
        shared=bool(row.get("is_public")),
        verified_community=bool(row.get("verified_community")),
        featured=bool(row.get("featured")),
    )


# =============================================================================
# Profiles
# =============================================================================


def profile_to_row(profile: UserProfile, user_id: str) -> dict[str, Any]:
    """profiles row for an upsert. email is owned by the identity provider."""
    return {
        "id": user_id,
        "email": profile.email,
        "name": profile.name,
        "city": profile.city,
        "personality": profile.personality.value,
    }


def profile_from_row(row: dict[str, Any] | None) -> dict[str, Any]:
    """Non-empty preference fields from a profiles row, ready to merge."""
    if not row:
        return {}
    return {k: row[k] for k in PROFILE_PREFERENCE_FIELDS if row.get(k) not in (None, "")}
