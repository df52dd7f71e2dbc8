"""
Mise - LLM Client.

Wraps AsyncOpenAI with Instructor for guaranteed structured outputs.
Only the AI fallback goes through here; the free extraction tiers never
touch the network beyond the page fetch.
"""

import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

import instructor
from openai import AsyncOpenAI
from pydantic import BaseModel

from mise.config import settings

logger = logging.getLogger(__name__)

# Type variable for generic structured output
T = TypeVar("T", bound=BaseModel)

# Singleton client instance
_client: instructor.AsyncInstructor | None = None


class LLMNotConfiguredError(RuntimeError):
    """No OpenAI API key is configured."""


@dataclass
class LLMResponse(Generic[T]):
    """Validated model output plus the token usage the API reported."""

    output: T
    tokens_used: int | None = None


def get_client() -> instructor.AsyncInstructor:
    """
    Get the Instructor-wrapped OpenAI client.

    Uses singleton pattern to reuse connection.

    Raises:
        LLMNotConfiguredError: If OPENAI_API_KEY is not set
    """
    global _client

    if _client is None:
        if not settings.openai_api_key:
            raise LLMNotConfiguredError("OpenAI API key not configured")
        openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
        _client = instructor.from_openai(openai_client)

    return _client


def reset_client() -> None:
    """Drop the cached client (after settings change)."""
    global _client
    _client = None


async def call_llm(
    *,
    response_model: type[T],
    system_prompt: str,
    user_prompt: str,
    model: str | None = None,
    temperature: float | None = None,
    max_retries: int | None = None,
) -> LLMResponse[T]:
    """
    Make a structured LLM call with guaranteed schema compliance.

    Args:
        response_model: Pydantic model class for the response
        system_prompt: System message setting context
        user_prompt: User message with the actual request
        model: Override the configured model
        temperature: Override the configured temperature
        max_retries: Number of retries if response doesn't match schema

    Returns:
        LLMResponse with the validated response_model instance

    Example:
        result = await call_llm(
            response_model=AIRecipe,
            system_prompt="You are a professional recipe parser...",
            user_prompt="Pancakes: 2 cups flour, 2 eggs...",
        )
        print(result.output.title)
    """
    client = get_client()
    model = model or settings.openai_model

    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]

    try:
        output, completion = await client.chat.completions.create_with_completion(
            model=model,
            messages=messages,
            response_model=response_model,
            max_retries=settings.openai_max_retries if max_retries is None else max_retries,
            temperature=settings.openai_temperature if temperature is None else temperature,
        )
    except Exception as e:
        logger.error(f"LLM call failed ({model}, {response_model.__name__}): {e}")
        raise

    usage = getattr(completion, "usage", None)
    tokens_used = getattr(usage, "total_tokens", None)
    logger.debug(f"LLM call ok ({model}, {response_model.__name__}, tokens={tokens_used})")

    return LLMResponse(output=output, tokens_used=tokens_used)
