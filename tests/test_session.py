"""Workflow tests for the proposal session state machine."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from music_connect.core.llm import ConfigurationError, GenerationError
from music_connect.core.proposal_store import ProposalStore
from music_connect.core.storage import InMemoryStorage, StorageError
from music_connect.schemas import (
    CUSTOM_ORIGIN_LABEL,
    ActivityDetail,
    ActivitySummary,
    Difficulty,
    TargetGroup,
    target_group_label,
)
from music_connect.workflows import DetailStatus, ProposalSession, WorkflowStatus
from music_connect.workflows.session import format_generation_error


def _idea(title: str, difficulty: str = "Medium") -> ActivitySummary:
    return ActivitySummary.model_validate(
        {
            "id": title.lower().replace(" ", "-"),
            "title": title,
            "description": "Short description.",
            "tags": ["Performance"],
            "duration": "2 ชั่วโมง",
            "difficulty": difficulty,
            "impactArea": "Mental Health",
        }
    )


def _detail(title: str = "X", **overrides: Any) -> ActivityDetail:
    fields: Dict[str, Any] = {
        "title": title,
        "full_description": "Full description.",
        "objectives": ["Objective"],
        "target_audience_detail": "Audience.",
        "step_by_step_plan": ["Step 1"],
        "required_equipment": ["Keyboard"],
        "budget_estimate": "25,000 บาท",
        "evaluation_metrics": ["Survey"],
    }
    fields.update(overrides)
    return ActivityDetail(**fields)


class StubGenerator:
    """Scripted stand-in for :class:`ProposalGenerator`.

    Each queue holds return values, exceptions to raise, or callables invoked
    with the call arguments.
    """

    def __init__(self) -> None:
        self.idea_results: List[Any] = []
        self.detail_results: List[Any] = []
        self.custom_results: List[Any] = []
        self.refine_results: List[Any] = []
        self.calls: List[tuple] = []

    @staticmethod
    def _next(queue: List[Any], *args: Any) -> Any:
        result = queue.pop(0)
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(*args)
        return result

    def ideas(self, target_group, existing_titles: Sequence[str] = ()) -> List[ActivitySummary]:
        self.calls.append(("ideas", target_group, list(existing_titles)))
        return self._next(self.idea_results, target_group, existing_titles)

    def detail_from_title(self, title, target_group) -> ActivityDetail:
        self.calls.append(("detail", title, target_group))
        return self._next(self.detail_results, title, target_group)

    def detail_from_text(self, user_text) -> ActivityDetail:
        self.calls.append(("custom", user_text))
        return self._next(self.custom_results, user_text)

    def refine(self, detail, instruction) -> ActivityDetail:
        self.calls.append(("refine", detail, instruction))
        return self._next(self.refine_results, detail, instruction)


@pytest.fixture
def generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def session(generator: StubGenerator, storage: InMemoryStorage) -> ProposalSession:
    store = ProposalStore(storage)
    store.load()
    return ProposalSession(store=store, generator=generator)


def _first_batch() -> List[ActivitySummary]:
    return [_idea(f"Idea {i}", level) for i, level in enumerate(["Low", "Medium", "High", "Low", "Medium"])]


def _second_batch() -> List[ActivitySummary]:
    return [_idea(f"More {i}") for i in range(5)]


def _open_ready_detail(session: ProposalSession, generator: StubGenerator, detail: ActivityDetail) -> None:
    generator.idea_results.append(_first_batch())
    session.discover(TargetGroup.ELDERLY)
    generator.detail_results.append(detail)
    session.view_detail(session.ideas[0])


# Discover and load more --------------------------------------------------------

def test_discover_replaces_batch(session: ProposalSession, generator: StubGenerator) -> None:
    generator.idea_results.append(_first_batch())

    assert session.discover(TargetGroup.ELDERLY) is True

    assert len(session.ideas) == 5
    assert {idea.difficulty for idea in session.ideas} <= set(Difficulty)
    assert session.status is WorkflowStatus.IDLE
    assert session.error is None
    assert generator.calls[0] == ("ideas", TargetGroup.ELDERLY, [])


def test_discover_clears_previous_batch_while_loading(session: ProposalSession, generator: StubGenerator) -> None:
    generator.idea_results.append(_first_batch())
    session.discover(TargetGroup.ELDERLY)
    observed: Dict[str, Any] = {}

    def _observe(*_: Any) -> List[ActivitySummary]:
        observed["ideas"] = list(session.ideas)
        observed["status"] = session.status
        return _second_batch()

    generator.idea_results.append(_observe)
    session.discover(TargetGroup.SCHOOL)

    assert observed == {"ideas": [], "status": WorkflowStatus.LOADING}
    assert [idea.title for idea in session.ideas] == [idea.title for idea in _second_batch()]


def test_discover_failure_sets_error_and_keeps_audience(session: ProposalSession, generator: StubGenerator) -> None:
    generator.idea_results.append(GenerationError("boom"))

    session.discover("hospital")

    assert session.ideas == []
    assert session.error is not None
    assert session.status is WorkflowStatus.IDLE
    assert session.target_group is TargetGroup.HOSPITAL


def test_discover_rejects_unknown_audience(session: ProposalSession, generator: StubGenerator) -> None:
    assert session.discover("astronauts") is False
    assert generator.calls == []


def test_load_more_appends_and_keeps_batch_visible(session: ProposalSession, generator: StubGenerator) -> None:
    generator.idea_results.append(_first_batch())
    session.discover(TargetGroup.ELDERLY)
    original = list(session.ideas)
    observed: Dict[str, Any] = {}

    def _observe(*_: Any) -> List[ActivitySummary]:
        observed["ideas"] = list(session.ideas)
        observed["status"] = session.status
        return _second_batch()

    generator.idea_results.append(_observe)
    assert session.load_more() is True

    assert observed["ideas"] == original
    assert observed["status"] is WorkflowStatus.LOADING_MORE
    assert len(session.ideas) == 10
    assert session.ideas[:5] == original
    assert generator.calls[-1] == ("ideas", TargetGroup.ELDERLY, [idea.title for idea in original])


def test_load_more_does_not_filter_duplicates(session: ProposalSession, generator: StubGenerator) -> None:
    generator.idea_results.extend([[_idea("Same")], [_idea("Same")]])
    session.discover(TargetGroup.PUBLIC)

    session.load_more()

    assert [idea.title for idea in session.ideas] == ["Same", "Same"]


def test_load_more_failure_preserves_batch(session: ProposalSession, generator: StubGenerator) -> None:
    generator.idea_results.extend([_first_batch(), GenerationError("rate limited 429")])
    session.discover(TargetGroup.ELDERLY)

    session.load_more()

    assert len(session.ideas) == 5
    assert session.error is not None
    assert session.status is WorkflowStatus.IDLE


def test_load_more_without_audience_is_noop(session: ProposalSession, generator: StubGenerator) -> None:
    assert session.load_more() is False
    assert generator.calls == []
    assert session.status is WorkflowStatus.IDLE


def test_stale_idea_response_is_discarded(session: ProposalSession, generator: StubGenerator) -> None:
    newer = [_idea("Newest")]

    def _superseded(*_: Any) -> List[ActivitySummary]:
        generator.idea_results.append(newer)
        session.discover(TargetGroup.ONLINE)
        return _first_batch()

    generator.idea_results.append(_superseded)
    session.discover(TargetGroup.ELDERLY)

    assert session.ideas == newer
    assert session.target_group is TargetGroup.ONLINE
    assert session.status is WorkflowStatus.IDLE


# Detail views --------------------------------------------------------------------

def test_view_detail_opens_loading_then_ready(session: ProposalSession, generator: StubGenerator) -> None:
    generator.idea_results.append(_first_batch())
    session.discover(TargetGroup.ELDERLY)
    observed: Dict[str, Any] = {}

    def _observe(*_: Any) -> ActivityDetail:
        observed["status"] = session.detail_view.status
        observed["detail"] = session.detail_view.detail
        return _detail("Idea 0")

    generator.detail_results.append(_observe)
    session.view_detail(session.ideas[0])

    assert observed == {"status": DetailStatus.LOADING, "detail": None}
    assert session.detail_view.status is DetailStatus.READY
    assert session.detail_view.detail.title == "Idea 0"
    assert generator.calls[-1] == ("detail", "Idea 0", TargetGroup.ELDERLY)


def test_view_detail_empty_response_shows_failure(session: ProposalSession, generator: StubGenerator) -> None:
    generator.idea_results.append(_first_batch())
    session.discover(TargetGroup.ELDERLY)
    generator.detail_results.append(GenerationError("Generation response did not contain any text"))

    session.view_detail(session.ideas[0])

    view = session.detail_view
    assert view.is_open
    assert view.status is DetailStatus.FAILED
    assert view.detail is None
    assert view.error
    assert len(session.store) == 0
    assert session.toggle_save() is None
    assert len(session.store) == 0


def test_view_detail_without_audience_fails_in_panel(session: ProposalSession, generator: StubGenerator) -> None:
    session.view_detail(_idea("Orphan"))

    assert session.detail_view.status is DetailStatus.FAILED
    assert generator.calls == []


def test_custom_generate_honours_budget(session: ProposalSession, generator: StubGenerator) -> None:
    request = "ประกวดดนตรีสากล มัธยมศึกษา งบ 100,000 บาท"
    generator.custom_results.append(_detail("ประกวดดนตรีสากล", budget_estimate="รวม 100,000 บาท"))

    assert session.custom_generate(f"  {request}  ") is True

    assert generator.calls[-1] == ("custom", request)
    assert session.detail_view.status is DetailStatus.READY
    assert "100,000" in session.detail_view.detail.budget_estimate
    assert session.custom_error is None
    assert session.detail_view.error is None


def test_custom_generate_rejects_blank_text(session: ProposalSession, generator: StubGenerator) -> None:
    assert session.custom_generate("   ") is False
    assert generator.calls == []
    assert not session.detail_view.is_open


def test_custom_generate_failure_closes_panel(session: ProposalSession, generator: StubGenerator) -> None:
    generator.custom_results.append(ConfigurationError("GEMINI_API_KEY environment variable is not set"))

    session.custom_generate("concert")

    assert not session.detail_view.is_open
    assert session.custom_error is not None
    assert "GEMINI_API_KEY" in session.custom_error


def test_stale_detail_response_is_discarded(session: ProposalSession, generator: StubGenerator) -> None:
    generator.idea_results.append(_first_batch())
    session.discover(TargetGroup.ELDERLY)

    def _superseded(*_: Any) -> ActivityDetail:
        generator.custom_results.append(_detail("Custom wins"))
        session.custom_generate("my own idea")
        return _detail("Idea 0")

    generator.detail_results.append(_superseded)
    session.view_detail(session.ideas[0])

    assert session.detail_view.detail.title == "Custom wins"


# Refine and edit -----------------------------------------------------------------

def test_refine_enters_edit_mode_without_persisting(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))
    session.toggle_save()
    generator.refine_results.append(_detail("X", budget_estimate="10,000 บาท"))

    assert session.refine("ลดงบเหลือ 10,000") is True

    view = session.detail_view
    assert view.is_editing
    assert view.displayed.budget_estimate == "10,000 บาท"
    assert session.store.items[0].budget_estimate == "25,000 บาท"
    assert generator.calls[-1][2] == "ลดงบเหลือ 10,000"

    session.save_edit()

    assert not view.is_editing
    assert view.detail.budget_estimate == "10,000 บาท"
    assert session.store.items[0].budget_estimate == "10,000 บาท"


def test_refine_can_be_reverted(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))
    generator.refine_results.append(_detail("X", objectives=["Changed"]))
    session.refine("change objectives")

    session.cancel_edit()

    assert session.detail_view.displayed.objectives == ["Objective"]


def test_refine_failure_keeps_previous_detail(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))
    generator.refine_results.append(GenerationError("request timed out"))

    session.refine("make it shorter")

    view = session.detail_view
    assert view.status is DetailStatus.READY
    assert view.displayed == _detail("X")
    assert view.refine_error is not None
    assert not view.refining
    assert session.error is None
    assert session.custom_error is None


def test_refine_requires_instruction_and_ready_detail(session: ProposalSession, generator: StubGenerator) -> None:
    assert session.refine("anything") is False
    _open_ready_detail(session, generator, _detail("X"))
    assert session.refine("   ") is False
    assert not generator.refine_results


def test_refine_result_for_closed_panel_is_discarded(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))

    def _closed_meanwhile(*_: Any) -> ActivityDetail:
        session.close_detail()
        return _detail("X", budget_estimate="1 บาท")

    generator.refine_results.append(_closed_meanwhile)
    session.refine("cheaper")

    assert not session.detail_view.is_open
    assert session.detail_view.draft is None


def test_manual_edit_save_updates_saved_entry(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))
    session.toggle_save()
    saved_id = session.store.items[0].id

    assert session.start_edit() is True
    session.update_field("requiredEquipment", "Piano\nDrums")
    session.update_field("budget_estimate", "15,000 บาท")

    assert session.detail_view.detail.required_equipment == ["Keyboard"]
    session.save_edit()

    saved = session.store.items[0]
    assert saved.id == saved_id
    assert saved.required_equipment == ["Piano", "Drums"]
    assert saved.budget_estimate == "15,000 บาท"


def test_manual_edit_of_unsaved_detail_does_not_save(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))
    session.start_edit()
    session.update_field("objectives", ["Edited"])
    session.save_edit()

    assert session.detail_view.detail.objectives == ["Edited"]
    assert len(session.store) == 0


def test_cancel_edit_restores_confirmed_detail(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))
    session.start_edit()
    session.update_field("title", "Renamed")

    session.cancel_edit()

    assert session.detail_view.displayed.title == "X"


def test_update_field_rejects_unknown_names(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))
    session.start_edit()

    with pytest.raises(ValueError):
        session.update_field("savedAt", 0)


def test_update_field_requires_edit_mode(session: ProposalSession) -> None:
    assert session.update_field("title", "Nope") is False


# Saving --------------------------------------------------------------------------

def test_toggle_save_twice_returns_to_empty(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))

    assert session.toggle_save() is True
    assert session.is_current_saved()
    saved = session.store.items[0]
    assert saved.title == "X"
    assert saved.target_group_label == target_group_label(TargetGroup.ELDERLY)

    assert session.toggle_save() is False
    assert len(session.store) == 0


def test_toggle_save_restores_existing_order(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("Keep"))
    session.toggle_save()
    before = session.store.items
    generator.detail_results.append(_detail("X"))
    session.view_detail(session.ideas[1])

    session.toggle_save()
    session.toggle_save()

    assert session.store.items == before


def test_custom_proposal_without_audience_gets_generic_label(session: ProposalSession, generator: StubGenerator) -> None:
    generator.custom_results.append(_detail("Garden Jam"))
    session.custom_generate("jam in the park")

    session.toggle_save()

    assert session.store.items[0].target_group_label == CUSTOM_ORIGIN_LABEL


def test_toggle_save_surfaces_storage_failures(session: ProposalSession, generator: StubGenerator, monkeypatch) -> None:
    _open_ready_detail(session, generator, _detail("X"))

    def _fail(*_: Any, **__: Any) -> None:
        raise StorageError("disk full")

    monkeypatch.setattr(session.store, "add", _fail)

    assert session.toggle_save() is False
    assert session.detail_view.save_error is not None


def test_open_saved_and_delete(session: ProposalSession, generator: StubGenerator) -> None:
    _open_ready_detail(session, generator, _detail("X"))
    session.toggle_save()
    saved_id = session.store.items[0].id
    session.close_detail()

    assert session.open_saved(saved_id) is True
    assert session.detail_view.status is DetailStatus.READY
    assert session.detail_view.detail == _detail("X")
    assert session.open_saved("missing") is False

    assert session.delete_saved(saved_id) is True
    assert session.saved == []
    assert session.delete_saved(saved_id) is False


def test_saved_state_survives_reload(session: ProposalSession, generator: StubGenerator, storage: InMemoryStorage) -> None:
    _open_ready_detail(session, generator, _detail("X"))
    session.toggle_save()

    reloaded = ProposalStore(storage)
    reloaded.load()

    assert reloaded.items == session.saved


def test_share_text_uses_displayed_detail(session: ProposalSession, generator: StubGenerator) -> None:
    assert session.share_text() is None
    _open_ready_detail(session, generator, _detail("X"))

    text = session.share_text()

    assert text is not None and text.startswith("🎵 X")


@pytest.mark.parametrize(
    "exception, fragment",
    [
        (ConfigurationError("GEMINI_API_KEY environment variable is not set"), "GEMINI_API_KEY"),
        (GenerationError("Generation request failed: 429 Too Many Requests"), "โควตา"),
        (GenerationError("Generation request timed out"), "ใช้เวลานาน"),
        (GenerationError(""), "กรุณาลองใหม่อีกครั้ง"),
    ],
)
def test_format_generation_error(exception: Exception, fragment: str) -> None:
    message = format_generation_error("Base.", exception)

    assert message.startswith("Base.")
    assert fragment in message
