"""Agents that draft a full proposal from a title or from free text."""

from __future__ import annotations

from typing import Optional, Union

from music_connect.agents import DEFAULT_AGENT_MODEL, call_llm_and_validate
from music_connect.core.llm import LLMClient
from music_connect.prompts import build_custom_detail_prompt, build_detail_prompt
from music_connect.schemas import ActivityDetail, TargetGroup


class DetailAgent:
    """Expands an idea title into a proposal for a known audience."""

    prompt_version = "detail.v2"

    def __init__(self, *, model: Optional[str] = None, client: Optional[LLMClient] = None) -> None:
        self.model = model or DEFAULT_AGENT_MODEL
        self.client = client

    def run(self, title: str, target_group: Union[TargetGroup, str]) -> ActivityDetail:
        return call_llm_and_validate(
            schema=ActivityDetail,
            prompt=build_detail_prompt(title, target_group),
            prompt_version=self.prompt_version,
            model=self.model,
            client=self.client,
        )


class CustomDetailAgent:
    """Drafts a proposal from a student's own description.

    Budget and timeline stated in the text are kept verbatim; the audience is
    inferred by the model.
    """

    prompt_version = "custom_detail.v1"

    def __init__(self, *, model: Optional[str] = None, client: Optional[LLMClient] = None) -> None:
        self.model = model or DEFAULT_AGENT_MODEL
        self.client = client

    def run(self, user_text: str) -> ActivityDetail:
        if not user_text.strip():
            raise ValueError("user_text must not be empty")

        return call_llm_and_validate(
            schema=ActivityDetail,
            prompt=build_custom_detail_prompt(user_text.strip()),
            prompt_version=self.prompt_version,
            model=self.model,
            client=self.client,
        )


__all__ = ["CustomDetailAgent", "DetailAgent"]
