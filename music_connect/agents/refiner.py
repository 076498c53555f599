"""Agent that revises an existing proposal based on user instructions."""

from __future__ import annotations

from typing import Optional

from music_connect.agents import DEFAULT_AGENT_MODEL, call_llm_and_validate
from music_connect.core.llm import LLMClient
from music_connect.prompts import build_refine_prompt
from music_connect.schemas import ActivityDetail


class RefinerAgent:
    """Applies a free-text instruction to a complete proposal."""

    prompt_version = "refiner.v1"

    def __init__(self, *, model: Optional[str] = None, client: Optional[LLMClient] = None) -> None:
        self.model = model or DEFAULT_AGENT_MODEL
        self.client = client

    def run(self, detail: ActivityDetail, instruction: str) -> ActivityDetail:
        """Return a revised copy of ``detail``; the input is left untouched."""

        if not instruction.strip():
            raise ValueError("instruction must not be empty")

        return call_llm_and_validate(
            schema=ActivityDetail,
            prompt=build_refine_prompt(detail.content(), instruction.strip()),
            prompt_version=self.prompt_version,
            model=self.model,
            client=self.client,
        )


__all__ = ["RefinerAgent"]
