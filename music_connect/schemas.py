"""Data schemas for the Music Connect application."""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator
from pydantic.alias_generators import to_camel


class Difficulty(str, Enum):
    """Preparation effort of an activity idea."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TargetGroup(str, Enum):
    """Audience categories a community activity can be designed for."""

    CHILDREN = "children"
    SCHOOL = "school"
    ELDERLY = "elderly"
    HOSPITAL = "hospital"
    PUBLIC = "public"
    ONLINE = "online"
    UNIVERSITY = "university"


@dataclass(frozen=True)
class TargetGroupInfo:
    """Display and prompt metadata for a :class:`TargetGroup`."""

    group: TargetGroup
    label: str
    icon: str
    description: str


TARGET_GROUPS: List[TargetGroupInfo] = [
    TargetGroupInfo(TargetGroup.CHILDREN, "เด็กเล็ก/อนุบาล", "👶", "เด็กเล็กและวัยอนุบาล"),
    TargetGroupInfo(TargetGroup.SCHOOL, "นักเรียนมัธยม", "🎒", "นักเรียนมัธยมและวัยรุ่น"),
    TargetGroupInfo(TargetGroup.ELDERLY, "ผู้สูงอายุ", "👴", "ผู้สูงอายุในศูนย์ดูแลหรือชุมชน"),
    TargetGroupInfo(
        TargetGroup.HOSPITAL,
        "ผู้ป่วยในโรงพยาบาล",
        "🏥",
        "ผู้ป่วยและบุคลากรทางการแพทย์ในโรงพยาบาล",
    ),
    TargetGroupInfo(TargetGroup.PUBLIC, "ชุมชนทั่วไป/สวนสาธารณะ", "🌳", "บุคคลทั่วไปในพื้นที่สาธารณะ"),
    TargetGroupInfo(TargetGroup.ONLINE, "ชุมชนออนไลน์", "💻", "ผู้ใช้งานสื่อสังคมออนไลน์"),
    TargetGroupInfo(
        TargetGroup.UNIVERSITY,
        "นักศึกษามหาวิทยาลัย",
        "🎓",
        "นักศึกษาและบุคลากรในมหาวิทยาลัย",
    ),
]

_TARGET_LOOKUP: Dict[str, TargetGroupInfo] = {info.group.value: info for info in TARGET_GROUPS}

DEFAULT_TARGET_DESCRIPTION = "ชุมชนทั่วไป"
CUSTOM_ORIGIN_LABEL = "กิจกรรมที่กำหนดเอง"


def target_group_info(group: Union[TargetGroup, str, None]) -> Optional[TargetGroupInfo]:
    """Return the metadata for ``group`` or ``None`` when it is not recognised."""

    if group is None:
        return None
    key = group.value if isinstance(group, TargetGroup) else str(group)
    return _TARGET_LOOKUP.get(key)


def describe_target_group(group: Union[TargetGroup, str, None]) -> str:
    """Expand an audience into the descriptive phrase used inside prompts."""

    info = target_group_info(group)
    return info.description if info else DEFAULT_TARGET_DESCRIPTION


def target_group_label(group: Union[TargetGroup, str, None]) -> str:
    """Return the human-readable origin label for a saved proposal."""

    info = target_group_info(group)
    return info.label if info else CUSTOM_ORIGIN_LABEL


def _split_list(value: str) -> List[str]:
    return [part.strip() for part in re.split(r"[\n]+", value) if part.strip()]


def _coerce_lists(payload: Dict[str, Any], keys: Iterable[str]) -> None:
    for key in keys:
        if key not in payload:
            continue
        value = payload[key]
        if isinstance(value, str):
            payload[key] = _split_list(value)
        elif isinstance(value, tuple):
            payload[key] = list(value)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActivitySummary(_CamelModel):
    """A lightweight idea card produced by the idea generator."""

    id: str
    title: str
    description: str
    tags: List[str]
    duration: str
    difficulty: Difficulty
    impact_area: str

    @model_validator(mode="before")
    @classmethod
    def _coerce_llm_variants(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        payload = dict(data)
        if isinstance(payload.get("id"), int):
            payload["id"] = str(payload["id"])
        if isinstance(payload.get("tags"), str):
            payload["tags"] = [tag.strip() for tag in payload["tags"].split(",") if tag.strip()]
        return payload


class ActivityDetail(_CamelModel):
    """A full activity proposal.

    ``title`` doubles as the identity key when matching a displayed proposal
    against the saved collection.
    """

    title: str
    full_description: str
    objectives: List[str]
    target_audience_detail: str = ""
    step_by_step_plan: List[str]
    required_equipment: List[str]
    budget_estimate: str = ""
    evaluation_metrics: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _apply_leniency(cls, data: object) -> object:
        """Default optional fields the model tends to drop or null out."""

        if not isinstance(data, dict):
            return data

        payload = dict(data)
        for key in ("targetAudienceDetail", "target_audience_detail", "budgetEstimate", "budget_estimate"):
            if key in payload and payload[key] is None:
                payload[key] = ""
        for key in ("evaluationMetrics", "evaluation_metrics"):
            if key in payload and payload[key] is None:
                payload[key] = []

        _coerce_lists(
            payload,
            (
                "objectives",
                "stepByStepPlan",
                "step_by_step_plan",
                "requiredEquipment",
                "required_equipment",
                "evaluationMetrics",
                "evaluation_metrics",
            ),
        )
        return payload

    def content(self) -> "ActivityDetail":
        """Return the proposal fields as a plain :class:`ActivityDetail`."""

        return ActivityDetail.model_validate(
            self.model_dump(include=set(ActivityDetail.model_fields))
        )


class SavedActivity(ActivityDetail):
    """An :class:`ActivityDetail` persisted in the saved collection."""

    id: str
    saved_at: int
    target_group_label: Optional[str] = None


class IdeaBatch(RootModel[List[ActivitySummary]]):
    """The list of idea cards returned by a single generation call."""

    def __iter__(self):  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


DETAIL_CONTENT_FIELDS = tuple(ActivityDetail.model_fields)


# Response schema descriptors sent with each generation request. They mirror
# the models above in the endpoint's OBJECT/ARRAY/STRING notation.

def _string() -> Dict[str, Any]:
    return {"type": "STRING"}


def _string_list() -> Dict[str, Any]:
    return {"type": "ARRAY", "items": _string()}


ACTIVITY_SUMMARY_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "id": _string(),
        "title": _string(),
        "description": _string(),
        "tags": _string_list(),
        "duration": _string(),
        "difficulty": {"type": "STRING", "enum": [level.value for level in Difficulty]},
        "impactArea": _string(),
    },
    "required": ["id", "title", "description", "tags", "duration", "difficulty", "impactArea"],
}

IDEA_BATCH_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": ACTIVITY_SUMMARY_SCHEMA,
}

ACTIVITY_DETAIL_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": _string(),
        "fullDescription": _string(),
        "objectives": _string_list(),
        "targetAudienceDetail": _string(),
        "stepByStepPlan": _string_list(),
        "requiredEquipment": _string_list(),
        "budgetEstimate": _string(),
        "evaluationMetrics": _string_list(),
    },
    "required": ["title", "fullDescription", "objectives", "stepByStepPlan", "requiredEquipment"],
}


def idea_batch_schema() -> Dict[str, Any]:
    return copy.deepcopy(IDEA_BATCH_SCHEMA)


def activity_detail_schema() -> Dict[str, Any]:
    return copy.deepcopy(ACTIVITY_DETAIL_SCHEMA)


__all__ = [
    "ACTIVITY_DETAIL_SCHEMA",
    "ACTIVITY_SUMMARY_SCHEMA",
    "CUSTOM_ORIGIN_LABEL",
    "DEFAULT_TARGET_DESCRIPTION",
    "DETAIL_CONTENT_FIELDS",
    "IDEA_BATCH_SCHEMA",
    "ActivityDetail",
    "ActivitySummary",
    "Difficulty",
    "IdeaBatch",
    "SavedActivity",
    "TARGET_GROUPS",
    "TargetGroup",
    "TargetGroupInfo",
    "activity_detail_schema",
    "describe_target_group",
    "idea_batch_schema",
    "target_group_info",
    "target_group_label",
]
