"""Built-in community itineraries, shown when the feed cannot be fetched."""

from pathfinder.models import Itinerary, ItineraryItem

_SEEDS = [
    Itinerary(
        id="6f1c2a7e-3b0d-4c1e-9a57-1d2f8e4b6c01",
        title="Neon Nights in Tokyo",
        date="2024-03-15",
        mood="Adventure",
        author="Kenji S.",
        likes=342,
        shared=True,
        tags=["Nightlife", "Foodie", "Cyberpunk"],
        items=[
            ItineraryItem(
                time="19:00",
                activity="Dinner",
                location_name="Omoide Yokocho",
                description="Atmospheric alleyway with yakitori stalls.",
                verified=True,
                category="Food",
                rating=4.5,
                review_count=1200,
                price="$$",
                image_url="https://images.unsplash.com/photo-1540959733332-eab4deabeeaf?q=80&w=1000&auto=format&fit=crop",
            ),
            ItineraryItem(
                time="21:00",
                activity="Drinks",
                location_name="Golden Gai",
                description="Tiny bars packed with character.",
                verified=True,
                category="Nightlife",
                rating=4.7,
                review_count=890,
                price="$$",
                image_url="https://images.unsplash.com/photo-1554797589-7241bb691973?q=80&w=1000&auto=format&fit=crop",
            ),
        ],
    ),
    Itinerary(
        id="0b9e4d3a-8f61-4a2c-b7d5-2e6a9c1f4b02",
        title="Brooklyn Hipster Crawl",
        date="2024-04-02",
        mood="Chill",
        author="Sarah Jenkins",
        likes=156,
        shared=True,
        tags=["Coffee", "Vintage", "Art"],
        items=[
            ItineraryItem(
                time="10:00",
                activity="Brunch",
                location_name="Five Leaves",
                description="Australian cafe famous for ricotta pancakes.",
                verified=True,
                category="Food",
                rating=4.4,
                review_count=2100,
                price="$$",
                image_url="https://images.unsplash.com/photo-1600093463592-8e36ae95ef56?q=80&w=1000&auto=format&fit=crop",
            ),
            ItineraryItem(
                time="12:00",
                activity="Shopping",
                location_name="Beacon's Closet",
                description="Legendary vintage clothing store.",
                verified=True,
                category="Activity",
                rating=4.2,
                review_count=500,
                price="$$",
                image_url="https://images.unsplash.com/photo-1483985988355-763728e1935b?q=80&w=1000&auto=format&fit=crop",
            ),
        ],
    ),
    Itinerary(
        id="c3d7a1f0-5e2b-4d8c-a9f6-3b7e0d2c5a03",
        title="Parisian Art & Wine",
        date="2024-05-10",
        mood="Cultural",
        author="Jean-Pierre",
        likes=890,
        shared=True,
        tags=["Romantic", "Museums", "Wine"],
        items=[
            ItineraryItem(
                time="14:00",
                activity="Culture",
                location_name="Musée d'Orsay",
                description="Impressionist art in a converted railway station.",
                verified=True,
                category="Activity",
                rating=4.8,
                review_count=15000,
                price="$$",
                image_url="https://images.unsplash.com/photo-1565099824688-e93eb20fe622?q=80&w=1000&auto=format&fit=crop",
            ),
        ],
    ),
]


def seed_itineraries() -> list[Itinerary]:
    """Fresh copies, so callers can mutate freely."""
    return [seed.model_copy(deep=True) for seed in _SEEDS]
