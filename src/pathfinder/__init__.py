"""
Pathfinder - Mood-driven travel itineraries.

Packages:
- cache: Local cache store (always available)
- db: Remote Supabase store and relational mapping
- sync: Synchronization engine between the two
- auth: Identity resolution and session lifecycle
"""

__version__ = "1.0.0"
