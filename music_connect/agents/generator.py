"""Facade exposing the four generation operations used by the session."""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence, Union

from music_connect.core.llm import LLMClient
from music_connect.schemas import ActivityDetail, ActivitySummary, TargetGroup

from .detail import CustomDetailAgent, DetailAgent
from .ideas import IdeaAgent
from .refiner import RefinerAgent

_LOGGER = logging.getLogger(__name__)


def _log_stage(stage: str, duration: float, prompt_version: str) -> None:
    _LOGGER.info(
        "%s generation completed in %.2fs [prompt_version=%s]",
        stage.capitalize(),
        duration,
        prompt_version,
    )


class ProposalGenerator:
    """Stateless entry point for ideas, details and refinements.

    Nothing is cached and nothing is retried; failures surface as
    :class:`~music_connect.core.llm.GenerationError`.
    """

    def __init__(self, *, model: Optional[str] = None, client: Optional[LLMClient] = None) -> None:
        self.idea_agent = IdeaAgent(model=model, client=client)
        self.detail_agent = DetailAgent(model=model, client=client)
        self.custom_agent = CustomDetailAgent(model=model, client=client)
        self.refiner_agent = RefinerAgent(model=model, client=client)

    def ideas(
        self,
        target_group: Union[TargetGroup, str],
        existing_titles: Sequence[str] = (),
    ) -> List[ActivitySummary]:
        start = time.perf_counter()
        ideas = self.idea_agent.run(target_group, existing_titles)
        _log_stage("ideas", time.perf_counter() - start, self.idea_agent.prompt_version)
        return ideas

    def detail_from_title(self, title: str, target_group: Union[TargetGroup, str]) -> ActivityDetail:
        start = time.perf_counter()
        detail = self.detail_agent.run(title, target_group)
        _log_stage("detail", time.perf_counter() - start, self.detail_agent.prompt_version)
        return detail

    def detail_from_text(self, user_text: str) -> ActivityDetail:
        start = time.perf_counter()
        detail = self.custom_agent.run(user_text)
        _log_stage("custom detail", time.perf_counter() - start, self.custom_agent.prompt_version)
        return detail

    def refine(self, detail: ActivityDetail, instruction: str) -> ActivityDetail:
        start = time.perf_counter()
        refined = self.refiner_agent.run(detail, instruction)
        _log_stage("refine", time.perf_counter() - start, self.refiner_agent.prompt_version)
        return refined


__all__ = ["ProposalGenerator"]
