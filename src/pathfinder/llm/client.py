"""
Pathfinder - LLM Client.

Wraps OpenAI with Instructor for schema-checked structured output.
Latency is unbounded and there is no retry beyond Instructor's own
re-ask on schema mismatch; callers decide whether to try again.
"""

import logging
from typing import TypeVar

import instructor
from openai import AsyncOpenAI
from pydantic import BaseModel

from pathfinder.config import settings
from pathfinder.errors import RemoteUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Singleton client instance
_client: instructor.AsyncInstructor | None = None


def get_client() -> instructor.AsyncInstructor:
    """
    Get the Instructor-wrapped OpenAI client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        if not settings.openai_api_key:
            raise RemoteUnavailable("OPENAI_API_KEY is not set")
        _client = instructor.from_openai(AsyncOpenAI(api_key=settings.openai_api_key))

    return _client


async def call_llm(
    *,
    response_model: type[T],
    prompt: str,
    system_prompt: str = "You are a local travel curator. Respond only with the requested structure.",
    max_retries: int = 2,
) -> T:
    """
    Make a structured LLM call.

    Example:
        plan = await call_llm(response_model=GeneratedItinerary, prompt="...")
    """
    client = get_client()
    logger.debug(f"LLM call: {response_model.__name__} via {settings.openai_model}")
    return await client.chat.completions.create(
        model=settings.openai_model,
        response_model=response_model,
        max_retries=max_retries,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ],
    )
