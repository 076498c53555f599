"""Shared utilities for Music Connect's generation agents."""

from __future__ import annotations

import os
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from music_connect.core import llm
from music_connect.core.llm import GenerationError, LLMClient
from music_connect.prompts import GenerationPrompt

T = TypeVar("T", bound=BaseModel)


DEFAULT_AGENT_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")


def call_llm_and_validate(
    *,
    schema: Type[T],
    prompt: GenerationPrompt,
    prompt_version: str,
    model: Optional[str] = None,
    client: Optional[LLMClient] = None,
) -> T:
    """Call the generation endpoint and validate the JSON payload."""

    data = llm.llm_json(
        prompt.text,
        prompt.response_schema,
        model or DEFAULT_AGENT_MODEL,
        prompt_version,
        client=client,
    )
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise GenerationError(
            f"Generation response could not be validated as {schema.__name__}: {exc}"
        ) from exc


from .detail import CustomDetailAgent, DetailAgent
from .generator import ProposalGenerator
from .ideas import IdeaAgent
from .refiner import RefinerAgent

__all__ = [
    "CustomDetailAgent",
    "DEFAULT_AGENT_MODEL",
    "DetailAgent",
    "GenerationError",
    "IdeaAgent",
    "ProposalGenerator",
    "RefinerAgent",
    "call_llm_and_validate",
]
