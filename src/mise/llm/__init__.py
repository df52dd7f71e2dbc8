"""
Mise - LLM Client.

Provides structured LLM calls via Instructor.
"""

from mise.llm.client import LLMNotConfiguredError, LLMResponse, call_llm, get_client, reset_client

__all__ = [
    "LLMNotConfiguredError",
    "LLMResponse",
    "call_llm",
    "get_client",
    "reset_client",
]
