"""
Pathfinder - Domain Models.

These are the shapes the app works with. The remote store normalizes
Itinerary into three tables (see pathfinder.db.mapping); the local cache
stores them as-is via model_dump(mode="json").
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal
from uuid import NAMESPACE_URL, UUID, uuid4, uuid5

from pydantic import BaseModel, Field

from pathfinder.errors import InputValidationError

# Namespace for deterministic coercion of legacy (non-UUID) itinerary ids
ITINERARY_ID_NAMESPACE = uuid5(NAMESPACE_URL, "pathfinder:itinerary")


def is_valid_uuid(value: str | None) -> bool:
    """True for canonical hyphenated UUID strings."""
    if not value:
        return False
    try:
        return str(UUID(value)) == value
    except (ValueError, AttributeError, TypeError):
        return False


def coerce_uuid(value: str | None) -> str:
    """
    Return a valid UUID for an itinerary id.

    Valid ids pass through untouched and upper-case UUIDs are lower-cased,
    matching what PostgREST returns. Non-UUID ids map deterministically so
    that saving or publishing the same legacy itinerary twice lands on the
    same row. Empty ids get a random UUID.
    """
    if is_valid_uuid(value):
        return value  # type: ignore[return-value]
    if not value:
        return str(uuid4())
    if is_valid_uuid(value.lower()):
        return value.lower()
    return str(uuid5(ITINERARY_ID_NAMESPACE, value))


class Personality(str, Enum):
    """Travel personality chosen at onboarding."""

    ADVENTUROUS = "Adventurous"
    CHILL = "Chill"
    FOODIE = "Foodie"
    CULTURAL = "Cultural"
    PARTY = "Party"


# =============================================================================
# User
# =============================================================================


class UserProfile(BaseModel):
    """
    The current user.

    name/email come from the identity provider; city/personality are
    preferences stored locally and in the profiles table.
    """

    name: str
    email: str = ""
    city: str = ""
    personality: Personality = Personality.CHILL
    role: Literal["user", "admin", "explorer"] | None = None
    id: str | None = None
    created_at: datetime | None = None

    def preferences(self) -> dict[str, Any]:
        """Locally/remotely stored preference fields."""
        return {"city": self.city, "personality": self.personality}


class PrivacySettings(BaseModel):
    """Per-user consent flags."""

    marketing_opt_in: bool = False
    ai_processing_opt_in: bool = True
    analytics_opt_in: bool = True


# =============================================================================
# Itineraries
# =============================================================================


class UserReview(BaseModel):
    """A review the user left on one stop."""

    rating: int = Field(ge=1, le=5)
    text: str
    date: str
    posted_to_yelp: bool = False


class Place(BaseModel):
    """Catalog entry shared across itineraries, keyed by name."""

    name: str
    category: str = "Activity"
    rating: float = 0.0
    review_count: int = 0
    price: str = "$$"
    image_url: str | None = None
    verified: bool = False
    id: str | None = None


class ItineraryItem(BaseModel):
    """One stop of an itinerary."""

    time: str
    activity: str = ""
    location_name: str
    description: str = ""
    verified: bool = False
    category: str = "Activity"  # Food / Activity / Nightlife, free text in practice
    rating: float = 0.0
    review_count: int = 0
    price: str = "$$"
    image_url: str | None = None
    completed: bool = False
    user_review: UserReview | None = None

    def to_place(self) -> Place:
        return Place(
            name=self.location_name,
            category=self.category,
            rating=self.rating,
            review_count=self.review_count,
            price=self.price,
            image_url=self.image_url,
            verified=self.verified,
        )


class Itinerary(BaseModel):
    """A named, dated, ordered plan. Item order is meaningful."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    date: str = ""
    mood: str = ""
    tags: list[str] = Field(default_factory=list)
    items: list[ItineraryItem] = Field(default_factory=list)
    author: str | None = None
    likes: int = 0
    shared: bool = False
    bookmarked: bool = False
    verified_community: bool = False
    featured: bool = False

    def remix(self) -> "Itinerary":
        """Clone into the user's library as a new, private itinerary."""
        return self.model_copy(
            deep=True,
            update={
                "id": str(uuid4()),
                "title": f"(Remix) {self.title}",
                "shared": False,
                "bookmarked": False,
            },
        )

    def toggle_completed(self, index: int, editable: bool = True) -> "Itinerary":
        """Return a copy with one stop's completed flag flipped."""
        if not editable:
            raise InputValidationError("Itinerary is read-only")
        self._check_index(index)
        items = [item.model_copy() for item in self.items]
        items[index] = items[index].model_copy(update={"completed": not items[index].completed})
        return self.model_copy(update={"items": items})

    def attach_review(self, index: int, review: UserReview) -> "Itinerary":
        """Return a copy with a review attached to one stop (once per stop)."""
        self._check_index(index)
        if self.items[index].user_review is not None:
            raise InputValidationError(
                f"{self.items[index].location_name} already has a review"
            )
        items = [item.model_copy() for item in self.items]
        items[index] = items[index].model_copy(update={"user_review": review})
        return self.model_copy(update={"items": items})

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.items):
            raise InputValidationError(f"No stop at position {index}")


class UserDataExport(BaseModel):
    """Everything we hold about a user, for data-portability requests."""

    profile: UserProfile | None = None
    itineraries: list[Itinerary] = Field(default_factory=list)
    preferences: dict[str, Any] = Field(default_factory=dict)
    timestamp: str
    version: str = "1.0"


# =============================================================================
# Planning options
# =============================================================================


class OptionCategory(str, Enum):
    MOOD = "mood"
    BUDGET = "budget"
    DURATION = "duration"
    GROUP = "group"
    TYPE = "type"


class ItineraryOption(BaseModel):
    """One choice offered when planning a trip (a mood, a budget, a place type...)."""

    category: OptionCategory
    label: str
    value: str
    icon: str | None = None
    sort_order: int = 0
    is_active: bool = True
    id: str | None = None
