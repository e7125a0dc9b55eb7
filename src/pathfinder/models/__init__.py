from pathfinder.models.entities import (
    Itinerary,
    ItineraryItem,
    ItineraryOption,
    OptionCategory,
    Personality,
    Place,
    PrivacySettings,
    UserDataExport,
    UserProfile,
    UserReview,
    coerce_uuid,
    is_valid_uuid,
)

__all__ = [
    "Itinerary",
    "ItineraryItem",
    "ItineraryOption",
    "OptionCategory",
    "Personality",
    "Place",
    "PrivacySettings",
    "UserDataExport",
    "UserProfile",
    "UserReview",
    "coerce_uuid",
    "is_valid_uuid",
]
