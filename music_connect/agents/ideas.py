"""Agent that brainstorms activity ideas for an audience."""

from __future__ import annotations

from typing import List, Optional, Sequence, Union

from music_connect.agents import DEFAULT_AGENT_MODEL, call_llm_and_validate
from music_connect.core.llm import GenerationError, LLMClient
from music_connect.prompts import build_ideas_prompt
from music_connect.schemas import ActivitySummary, IdeaBatch, TargetGroup


class IdeaAgent:
    """Produces a batch of diverse activity idea cards."""

    prompt_version = "ideas.v2"

    def __init__(self, *, model: Optional[str] = None, client: Optional[LLMClient] = None) -> None:
        self.model = model or DEFAULT_AGENT_MODEL
        self.client = client

    def run(
        self,
        target_group: Union[TargetGroup, str],
        existing_titles: Sequence[str] = (),
    ) -> List[ActivitySummary]:
        """Return new idea cards, steering away from ``existing_titles``."""

        batch = call_llm_and_validate(
            schema=IdeaBatch,
            prompt=build_ideas_prompt(target_group, existing_titles),
            prompt_version=self.prompt_version,
            model=self.model,
            client=self.client,
        )
        if not batch.root:
            raise GenerationError("Generation response did not contain any ideas")
        return list(batch.root)


__all__ = ["IdeaAgent"]
