"""
Itinerary generation.

Turns a mood/budget/group request into an Itinerary via the generative
provider, and refines existing itineraries from a free-text instruction.
The provider is an injected async callable so it can be swapped or faked.
"""

import json
import logging
import random
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from pathfinder.errors import InputValidationError
from pathfinder.llm import call_llm
from pathfinder.models import Itinerary, ItineraryItem, Personality

logger = logging.getLogger(__name__)

LLMCall = Callable[..., Awaitable[Any]]

PLACE_IMAGES = {
    "Restaurant": "https://images.unsplash.com/photo-1517248135467-4c7edcad34c4?q=80&w=1200",
    "Bar": "https://images.unsplash.com/photo-1514933651103-005eec06c04b?q=80&w=1200",
    "Museum": "https://images.unsplash.com/photo-1566127444979-b3d2b654e3d7?q=80&w=1200",
    "Park": "https://images.unsplash.com/photo-1496347646636-ea47f7d6b37b?q=80&w=1200",
    "Shopping": "https://images.unsplash.com/photo-1483985988355-763728e1935b?q=80&w=1200",
    "Club": "https://images.unsplash.com/photo-1566737236500-c8ac43014a67?q=80&w=1200",
    "Food": "https://images.unsplash.com/photo-1504674900247-0877df9cc836?q=80&w=1200",
    "Nature": "https://images.unsplash.com/photo-1441974231531-c6227db76b6e?q=80&w=1200",
}

DEFAULT_IMAGES = [
    "https://images.unsplash.com/photo-1469854523086-cc02fe5d8800?q=80&w=1200",
    "https://images.unsplash.com/photo-1476514525535-07fb3b4ae5f1?q=80&w=1200",
    "https://images.unsplash.com/photo-1501504905252-473c47e087f8?q=80&w=1200",
]


def place_image(category: str | None) -> str:
    return PLACE_IMAGES.get(category or "", random.choice(DEFAULT_IMAGES))


# =============================================================================
# Structured output
# =============================================================================


class GeneratedStop(BaseModel):
    time: str
    activity: str
    location_name: str
    description: str = ""
    verified: bool = True
    category: str = "Activity"
    rating: float = Field(default=4.0, ge=0, le=5)
    review_count: int = 0
    price: str = "$$"


class GeneratedItinerary(BaseModel):
    title: str = Field(default="", description="A short, catchy name for this trip (max 6 words)")
    items: list[GeneratedStop] = Field(default_factory=list)


class GenerationRequest(BaseModel):
    city: str
    mood: str
    personality: Personality = Personality.CHILL
    budget: str = "$$"
    duration: str = "Full Day"
    group_size: str = "Couple"
    stop_count: int = Field(default=4, ge=1, le=12)
    place_types: list[str] = Field(default_factory=list)
    custom_name: str = ""


def build_prompt(request: GenerationRequest) -> str:
    type_constraint = (
        f"Ensure you visit these types of places: {', '.join(request.place_types)}."
        if request.place_types
        else ""
    )
    return f"""Create a {request.stop_count}-stop itinerary for a {request.group_size} in {request.city}.
User Personality: "{request.personality.value}". Mood: "{request.mood}". Budget: {request.budget}.
Duration context: {request.duration}.
{type_constraint}

Title Instruction: The user has provided this name preference: "{request.custom_name}".
If it is not empty, use it EXACTLY as the title.
If it is empty, generate a SHORT, MEMORABLE, and CREATIVE title (max 6 words) based on the vibe.

For each stop include realistic review data:
- rating (between 3.5 and 5.0)
- review_count (a realistic number)
- price (matching the budget)
- verified: true

The itinerary should flow logically by time."""


def _to_items(stops: list[GeneratedStop]) -> list[ItineraryItem]:
    return [
        ItineraryItem(**stop.model_dump(), image_url=place_image(stop.category))
        for stop in stops
    ]


async def generate_itinerary(request: GenerationRequest, llm: LLMCall | None = None) -> Itinerary:
    """Ask the provider for stops and wrap them in a new Itinerary."""
    if not request.mood.strip():
        raise InputValidationError("Please select a vibe & mood to continue")
    if not request.city.strip():
        raise InputValidationError("A city is required")

    llm = llm or call_llm
    generated: GeneratedItinerary = await llm(
        response_model=GeneratedItinerary,
        prompt=build_prompt(request),
    )
    logger.info(f"Generated {len(generated.items)} stops for {request.city}")

    return Itinerary(
        id=str(uuid4()),
        title=request.custom_name.strip() or generated.title or f"{request.mood} in {request.city}",
        date=date.today().isoformat(),
        mood=request.mood,
        tags=[request.group_size, request.budget, request.duration, *request.place_types],
        items=_to_items(generated.items),
    )


async def refine_itinerary(itinerary: Itinerary, instruction: str, llm: LLMCall | None = None) -> Itinerary:
    """Rewrite the stops from a free-text request; id and flags are kept."""
    if not instruction.strip():
        raise InputValidationError("Tell us what to change")

    llm = llm or call_llm
    current = json.dumps(itinerary.model_dump(mode="json", include={"title", "items"}))
    generated: GeneratedItinerary = await llm(
        response_model=GeneratedItinerary,
        prompt=(
            f"Current itinerary JSON: {current}\n"
            f"User request: {instruction}\n"
            "Update the itinerary stops based on the request. Keep the same structure and review data fields."
        ),
    )
    return itinerary.model_copy(
        update={
            "title": generated.title or itinerary.title,
            "items": _to_items(generated.items) if generated.items else itinerary.items,
        }
    )
