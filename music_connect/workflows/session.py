"""Coordinates user-triggered proposal workflows against the generator and store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from music_connect.core.exporters import detail_to_share_text
from music_connect.core.llm import ConfigurationError
from music_connect.core.proposal_store import ProposalStore
from music_connect.core.storage import StorageError
from music_connect.schemas import (
    DETAIL_CONTENT_FIELDS,
    ActivityDetail,
    ActivitySummary,
    SavedActivity,
    TargetGroup,
    target_group_label,
)

_LOGGER = logging.getLogger(__name__)

DISCOVER_ERROR = "เกิดข้อผิดพลาดในการสร้างไอเดีย"
LOAD_MORE_ERROR = "เกิดข้อผิดพลาดในการโหลดข้อมูลเพิ่มเติม"
DETAIL_ERROR = "ไม่สามารถโหลดข้อมูลแผนกิจกรรมได้"
CUSTOM_ERROR = "ไม่สามารถสร้างแผนกิจกรรมจากคำอธิบายได้"
REFINE_ERROR = "ไม่สามารถปรับแก้แผนงานได้"
SAVE_ERROR = "ไม่สามารถบันทึกกิจกรรมได้"

_IDEAS = "ideas"
_DETAIL = "detail"
_REFINE = "refine"

_FIELD_ALIASES: Dict[str, str] = {
    ActivityDetail.model_fields[name].alias or name: name for name in DETAIL_CONTENT_FIELDS
}


class Generator(Protocol):
    def ideas(
        self, target_group: Union[TargetGroup, str], existing_titles: Sequence[str] = ...
    ) -> List[ActivitySummary]:
        ...

    def detail_from_title(self, title: str, target_group: Union[TargetGroup, str]) -> ActivityDetail:
        ...

    def detail_from_text(self, user_text: str) -> ActivityDetail:
        ...

    def refine(self, detail: ActivityDetail, instruction: str) -> ActivityDetail:
        ...


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADING_MORE = "loading_more"


class DetailStatus(str, Enum):
    CLOSED = "closed"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass
class DetailView:
    """State of the proposal panel.

    ``detail`` is the last confirmed proposal; ``draft`` is the working copy
    while editing and is what gets displayed when present.
    """

    status: DetailStatus = DetailStatus.CLOSED
    detail: Optional[ActivityDetail] = None
    draft: Optional[ActivityDetail] = None
    error: Optional[str] = None
    refining: bool = False
    refine_error: Optional[str] = None
    save_error: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status is not DetailStatus.CLOSED

    @property
    def is_editing(self) -> bool:
        return self.draft is not None

    @property
    def displayed(self) -> Optional[ActivityDetail]:
        return self.draft if self.draft is not None else self.detail


def format_generation_error(base_message: str, exc: Exception) -> str:
    """Turn a generation failure into a retryable, user-facing message."""

    details = str(exc).strip().lower()
    if isinstance(exc, ConfigurationError) or "api_key" in details:
        return f"{base_message} กรุณาตั้งค่า GEMINI_API_KEY ในไฟล์ .env"
    if "429" in details or "too many requests" in details or "quota" in details:
        return f"{base_message} มีการใช้งานเกินโควตาชั่วคราว กรุณารอสักครู่แล้วลองใหม่"
    if "timed out" in details or "timeout" in details:
        return f"{base_message} การเชื่อมต่อใช้เวลานานเกินไป กรุณาลองใหม่อีกครั้ง"
    return f"{base_message} กรุณาลองใหม่อีกครั้ง"


@dataclass
class ProposalSession:
    """The state machine behind discover, detail, refine, edit and save.

    Each workflow carries a monotonic request token; a response is applied
    only when its token is still the latest one issued for that workflow.
    """

    store: ProposalStore
    generator: Generator
    target_group: Optional[TargetGroup] = None
    ideas: List[ActivitySummary] = field(default_factory=list)
    status: WorkflowStatus = WorkflowStatus.IDLE
    error: Optional[str] = None
    custom_error: Optional[str] = None
    detail_view: DetailView = field(default_factory=DetailView)
    _tokens: Dict[str, int] = field(default_factory=dict, repr=False)

    # Request tokens -------------------------------------------------------
    def _issue(self, workflow: str) -> int:
        token = self._tokens.get(workflow, 0) + 1
        self._tokens[workflow] = token
        return token

    def _is_current(self, workflow: str, token: int) -> bool:
        if self._tokens.get(workflow) == token:
            return True
        _LOGGER.warning("Discarding stale %s response (token %s)", workflow, token)
        return False

    # Discovery ------------------------------------------------------------
    def discover(self, target_group: Union[TargetGroup, str]) -> bool:
        """Replace the idea batch with fresh ideas for ``target_group``."""

        try:
            group = TargetGroup(target_group)
        except ValueError:
            return False

        token = self._issue(_IDEAS)
        self.target_group = group
        self.status = WorkflowStatus.LOADING
        self.error = None
        self.ideas = []

        try:
            ideas = self.generator.ideas(group, [])
        except Exception as exc:  # noqa: BLE001 - surfaced to the user
            if self._is_current(_IDEAS, token):
                _LOGGER.exception("Idea generation failed for %s", group.value)
                self.error = format_generation_error(DISCOVER_ERROR, exc)
                self.status = WorkflowStatus.IDLE
            return True

        if self._is_current(_IDEAS, token):
            self.ideas = list(ideas)
            self.status = WorkflowStatus.IDLE
        return True

    def load_more(self) -> bool:
        """Append another batch while keeping the current one visible."""

        if self.target_group is None:
            return False

        group = self.target_group
        token = self._issue(_IDEAS)
        self.status = WorkflowStatus.LOADING_MORE
        self.error = None
        existing_titles = [idea.title for idea in self.ideas]

        try:
            ideas = self.generator.ideas(group, existing_titles)
        except Exception as exc:  # noqa: BLE001 - surfaced to the user
            if self._is_current(_IDEAS, token):
                _LOGGER.exception("Loading more ideas failed for %s", group.value)
                self.error = format_generation_error(LOAD_MORE_ERROR, exc)
                self.status = WorkflowStatus.IDLE
            return True

        if self._is_current(_IDEAS, token):
            self.ideas = [*self.ideas, *ideas]
            self.status = WorkflowStatus.IDLE
        return True

    # Detail panel ---------------------------------------------------------
    def _open_detail(self, status: DetailStatus, detail: Optional[ActivityDetail] = None) -> None:
        self._issue(_REFINE)
        self.detail_view = DetailView(status=status, detail=detail)

    def view_detail(self, summary: ActivitySummary) -> bool:
        """Open the panel and draft a proposal for an idea card."""

        token = self._issue(_DETAIL)
        self._open_detail(DetailStatus.LOADING)
        group = self.target_group

        try:
            if group is None:
                raise ValueError("No target group selected")
            detail = self.generator.detail_from_title(summary.title, group)
        except Exception as exc:  # noqa: BLE001 - surfaced to the user
            if self._is_current(_DETAIL, token):
                _LOGGER.exception("Detail generation failed for %r", summary.title)
                self.detail_view = DetailView(
                    status=DetailStatus.FAILED,
                    error=format_generation_error(DETAIL_ERROR, exc),
                )
            return True

        if self._is_current(_DETAIL, token):
            self.detail_view = DetailView(status=DetailStatus.READY, detail=detail)
        return True

    def custom_generate(self, text: str) -> bool:
        """Draft a proposal from free text; failures close the panel."""

        user_text = (text or "").strip()
        if not user_text:
            return False

        token = self._issue(_DETAIL)
        self.custom_error = None
        self._open_detail(DetailStatus.LOADING)

        try:
            detail = self.generator.detail_from_text(user_text)
        except Exception as exc:  # noqa: BLE001 - surfaced to the user
            if self._is_current(_DETAIL, token):
                _LOGGER.exception("Custom proposal generation failed")
                self.detail_view = DetailView()
                self.custom_error = format_generation_error(CUSTOM_ERROR, exc)
            return True

        if self._is_current(_DETAIL, token):
            self.detail_view = DetailView(status=DetailStatus.READY, detail=detail)
        return True

    def open_saved(self, activity_id: str) -> bool:
        saved = self.store.get(activity_id)
        if saved is None:
            return False
        self._issue(_DETAIL)
        self._open_detail(DetailStatus.READY, saved.content())
        return True

    def close_detail(self) -> None:
        self._issue(_DETAIL)
        self._open_detail(DetailStatus.CLOSED)

    # Refinement and editing -----------------------------------------------
    def refine(self, instruction: str) -> bool:
        """Revise the displayed proposal and leave the result in edit mode."""

        view = self.detail_view
        current = view.displayed
        text = (instruction or "").strip()
        if view.status is not DetailStatus.READY or current is None or not text:
            return False

        detail_token = self._tokens.get(_DETAIL, 0)
        token = self._issue(_REFINE)
        view.refining = True
        view.refine_error = None

        try:
            refined = self.generator.refine(current, text)
        except Exception as exc:  # noqa: BLE001 - surfaced to the user
            if self._is_current(_REFINE, token) and self._is_current(_DETAIL, detail_token):
                _LOGGER.exception("Refining %r failed", current.title)
                view.refining = False
                view.refine_error = format_generation_error(REFINE_ERROR, exc)
            return True

        if self._is_current(_REFINE, token) and self._is_current(_DETAIL, detail_token):
            view.refining = False
            view.draft = refined
        return True

    def start_edit(self) -> bool:
        view = self.detail_view
        if view.status is not DetailStatus.READY or view.detail is None:
            return False
        if view.draft is None:
            view.draft = view.detail.model_copy(deep=True)
        return True

    def update_field(self, name: str, value: Any) -> bool:
        """Change one field of the working copy.

        ``name`` may be the attribute name or the camelCase wire name. List
        fields accept a list or newline separated text.
        """

        view = self.detail_view
        if view.draft is None:
            return False
        field_name = _FIELD_ALIASES.get(name, name)
        if field_name not in DETAIL_CONTENT_FIELDS:
            raise ValueError(f"Unknown proposal field: {name}")

        payload = view.draft.model_dump()
        payload[field_name] = value
        view.draft = ActivityDetail.model_validate(payload)
        return True

    def save_edit(self) -> bool:
        """Confirm the working copy and update its saved entry, if any."""

        view = self.detail_view
        if view.draft is None:
            return False

        confirmed = view.draft
        view.detail = confirmed
        view.draft = None
        view.save_error = None
        if self.store.is_saved(confirmed.title):
            try:
                self.store.update_by_title(confirmed)
            except StorageError:
                _LOGGER.exception("Updating saved proposal %r failed", confirmed.title)
                view.save_error = SAVE_ERROR
        return True

    def cancel_edit(self) -> bool:
        view = self.detail_view
        if view.draft is None:
            return False
        view.draft = None
        return True

    # Saved collection -----------------------------------------------------
    def is_current_saved(self) -> bool:
        detail = self.detail_view.detail
        return detail is not None and self.store.is_saved(detail.title)

    def toggle_save(self) -> Optional[bool]:
        """Save or unsave the confirmed proposal; returns the new saved state."""

        view = self.detail_view
        detail = view.detail
        if view.status is not DetailStatus.READY or detail is None:
            return None

        view.save_error = None
        existing = self.store.find_by_title(detail.title)
        try:
            if existing is not None:
                self.store.remove(existing.id)
                return False
            self.store.add(detail, target_group_label(self.target_group))
            return True
        except StorageError:
            _LOGGER.exception("Toggling saved state of %r failed", detail.title)
            view.save_error = SAVE_ERROR
            return existing is not None

    def delete_saved(self, activity_id: str) -> bool:
        try:
            return self.store.remove(activity_id)
        except StorageError:
            _LOGGER.exception("Deleting saved proposal %s failed", activity_id)
            return False

    @property
    def saved(self) -> List[SavedActivity]:
        return self.store.items

    def share_text(self) -> Optional[str]:
        detail = self.detail_view.displayed
        if detail is None:
            return None
        return detail_to_share_text(detail)


__all__ = [
    "DetailStatus",
    "DetailView",
    "Generator",
    "ProposalSession",
    "WorkflowStatus",
    "format_generation_error",
]
