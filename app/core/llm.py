"""LLM client utilities shared by narrative chains."""

import json
import re
from typing import TypeVar

from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from app.core.config import get_settings

T = TypeVar("T", bound=BaseModel)

PROVIDER_ANTHROPIC = "anthropic"
PROVIDER_OPENAI = "openai"


def get_llm(model: str | None = None, temperature: float = 0.1, max_tokens: int | None = None) -> ChatOpenAI:
    """
    Get configured OpenAI chat model for LangChain chains.

    Args:
        model: Model name override (defaults to NARRATIVE_OPENAI_MODEL)
        temperature: Temperature for generation (default 0.1)
        max_tokens: Optional output token cap

    Returns:
        ChatOpenAI instance configured with API key and model
    """
    settings = get_settings()

    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=model or settings.NARRATIVE_OPENAI_MODEL,
        temperature=temperature,
        max_tokens=max_tokens,
    )


def provider_is_configured(provider: str) -> bool:
    """True when the API key for the given narrative provider is set."""
    settings = get_settings()
    if provider == PROVIDER_ANTHROPIC:
        return bool(settings.ANTHROPIC_API_KEY)
    if provider == PROVIDER_OPENAI:
        return bool(settings.OPENAI_API_KEY)
    return False


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    # Extract JSON from markdown code fences
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    # Unterminated fence
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    return cleaned.strip()


def parse_llm_json(raw_output: str, model: type[T]) -> T:
    """
    Parse LLM output as JSON and validate against a Pydantic model.

    Args:
        raw_output: Raw string from LLM response
        model: Pydantic model class to validate against

    Returns:
        Validated Pydantic model instance

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        pydantic.ValidationError: If parsed JSON doesn't match schema
    """
    return model.model_validate(parse_llm_json_dict(raw_output))


def parse_llm_json_dict(raw_output: str) -> dict:
    """
    Parse LLM output as a JSON object.

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        ValueError: If the JSON is not an object
    """
    parsed = json.loads(_strip_llm_fences(raw_output))
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed
