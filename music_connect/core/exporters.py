"""Utilities for exporting proposals to shareable text formats."""

from __future__ import annotations

from typing import Iterable, List

from music_connect.schemas import ActivityDetail, SavedActivity


def _bullets(items: Iterable[str], marker: str = "-") -> List[str]:
    return [f"{marker} {item}" for item in items if item]


def detail_to_share_text(detail: ActivityDetail) -> str:
    """Render a plain-text summary suitable for a share sheet or clipboard."""

    lines: List[str] = [f"🎵 {detail.title}", ""]
    if detail.full_description:
        lines.extend(["📝 รายละเอียด", detail.full_description, ""])
    if detail.objectives:
        lines.extend(["🎯 วัตถุประสงค์", *_bullets(detail.objectives), ""])
    if detail.step_by_step_plan:
        lines.append("📋 ขั้นตอนการดำเนินงาน")
        lines.extend(f"{index}. {step}" for index, step in enumerate(detail.step_by_step_plan, start=1))
        lines.append("")
    if detail.required_equipment:
        lines.extend(["🎸 อุปกรณ์ที่ต้องใช้", *_bullets(detail.required_equipment), ""])
    if detail.budget_estimate:
        lines.extend(["💰 งบประมาณ", detail.budget_estimate, ""])
    lines.append("สร้างโดย Music Connect")
    return "\n".join(lines)


def _markdown_section(title: str, body: List[str]) -> List[str]:
    if not body:
        return []
    return [f"## {title}", "", *body, ""]


def detail_to_markdown(detail: ActivityDetail) -> str:
    """Render every proposal field as a markdown document."""

    lines: List[str] = [f"# {detail.title}", ""]
    if isinstance(detail, SavedActivity) and detail.target_group_label:
        lines.extend([f"_กลุ่มเป้าหมาย: {detail.target_group_label}_", ""])

    lines.extend(_markdown_section("รายละเอียดโดยย่อ", [detail.full_description] if detail.full_description else []))
    lines.extend(_markdown_section("วัตถุประสงค์", _bullets(detail.objectives)))
    lines.extend(
        _markdown_section(
            "วิเคราะห์กลุ่มเป้าหมาย",
            [detail.target_audience_detail] if detail.target_audience_detail else [],
        )
    )
    lines.extend(
        _markdown_section(
            "ขั้นตอนการดำเนินงาน",
            [f"{index}. {step}" for index, step in enumerate(detail.step_by_step_plan, start=1)],
        )
    )
    lines.extend(_markdown_section("อุปกรณ์ที่ต้องใช้", _bullets(detail.required_equipment)))
    lines.extend(_markdown_section("งบประมาณ", [detail.budget_estimate] if detail.budget_estimate else []))
    lines.extend(_markdown_section("การวัดผล", _bullets(detail.evaluation_metrics)))
    return "\n".join(lines).rstrip() + "\n"


__all__ = ["detail_to_markdown", "detail_to_share_text"]
