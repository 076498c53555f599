"""Prompt builders for each generation operation.

Every builder is a pure function returning the prompt text together with the
response schema the endpoint must honour.
"""

from __future__ import annotations

import json
from typing import Any, Dict, NamedTuple, Sequence, Union

from music_connect.schemas import (
    ActivityDetail,
    TargetGroup,
    activity_detail_schema,
    describe_target_group,
    idea_batch_schema,
)

IDEAS_PER_BATCH = 5
DEFAULT_TIMELINE = "3 เดือน"
DEFAULT_BUDGET = "20,000 - 30,000 บาท"


class GenerationPrompt(NamedTuple):
    """Prompt text plus the response schema sent alongside it."""

    text: str
    response_schema: Dict[str, Any]


_DETAIL_FIELD_GUIDE = (
    "ตอบกลับเป็น JSON Object ตามโครงสร้างนี้:\n"
    "- title: string (ชื่อกิจกรรม)\n"
    "- fullDescription: string (รายละเอียดกิจกรรม แบบบรรยาย 1 ย่อหน้า)\n"
    "- objectives: array of strings (วัตถุประสงค์ 3-5 ข้อ)\n"
    "- targetAudienceDetail: string (วิเคราะห์กลุ่มเป้าหมายและสิ่งที่ต้องระวัง)\n"
    "- stepByStepPlan: array of strings (ขั้นตอนการดำเนินงาน แต่ละข้อคือหนึ่งขั้นตอนที่ลงมือทำได้)\n"
    "- requiredEquipment: array of strings (อุปกรณ์ที่ต้องใช้ ทั้งเครื่องดนตรีและอุปกรณ์เสริม)\n"
    "- budgetEstimate: string (ประมาณการงบประมาณ แจกแจงรายการและตัวเลข)\n"
    "- evaluationMetrics: array of strings (ตัวชี้วัดความสำเร็จ)\n"
    "ห้ามใช้ค่า null หากไม่มีข้อมูลให้ใช้ข้อความว่างหรือรายการว่าง"
)


def _serialise_detail(detail: ActivityDetail) -> str:
    return json.dumps(detail.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2)


def build_ideas_prompt(
    target_group: Union[TargetGroup, str],
    existing_titles: Sequence[str] = (),
) -> GenerationPrompt:
    """Ask for a fresh batch of activity ideas for an audience."""

    target_description = describe_target_group(target_group)

    avoid_instruction = ""
    if existing_titles:
        listed = "\n".join(f"- {title}" for title in existing_titles)
        avoid_instruction = (
            "\nสำคัญมาก: กิจกรรมใหม่ที่คิดต้องไม่ซ้ำกับกิจกรรมเหล่านี้ "
            "ห้ามใช้ชื่อเดียวกับรายการต่อไปนี้:\n"
            f"{listed}\n"
        )

    text = (
        "คุณเป็นอาจารย์ที่ปรึกษาด้านดนตรีสากลและกิจกรรมเพื่อสังคม\n"
        f"ช่วยคิดกิจกรรมสร้างสรรค์ใหม่จำนวน {IDEAS_PER_BATCH} กิจกรรมพอดี "
        f'สำหรับ "นักศึกษาเอกดนตรีสากล" เพื่อไปจัดกิจกรรมให้แก่ "{target_description}"\n'
        f"{avoid_instruction}"
        "\n"
        "กิจกรรมต้องแตกต่างกันอย่างชัดเจน (เช่น การแสดง, การสอน, ดนตรีบำบัดเบื้องต้น, การ workshop)\n"
        "และต้องเหมาะสมกับบริบทของกลุ่มเป้าหมาย\n"
        "\n"
        "ตอบกลับเป็น JSON Array โดยแต่ละรายการมีโครงสร้างดังนี้:\n"
        "- id: string (รหัสเฉพาะของแต่ละรายการในชุดนี้)\n"
        "- title: string (ชื่อกิจกรรมที่น่าสนใจ)\n"
        "- description: string (คำอธิบายสั้นๆ ประมาณ 2 ประโยค)\n"
        '- tags: array of strings (เช่น "Performance", "Workshop", "Music Therapy", "Fun")\n'
        '- duration: string (ระยะเวลาที่ใช้ เช่น "2 ชั่วโมง", "ครึ่งวัน")\n'
        '- difficulty: string (ระดับความยากในการเตรียมงาน: "Low", "Medium", "High" เท่านั้น)\n'
        '- impactArea: string (ด้านที่พัฒนา เช่น "Mental Health", "Education", "Social Bond")'
    )
    return GenerationPrompt(text, idea_batch_schema())


def build_detail_prompt(title: str, target_group: Union[TargetGroup, str]) -> GenerationPrompt:
    """Ask for a complete proposal for an idea picked from a batch."""

    target_description = describe_target_group(target_group)
    text = (
        f'ช่วยเขียน "ข้อเสนอโครงการ" (Project Proposal) อย่างละเอียด สำหรับกิจกรรมชื่อ "{title}"\n'
        f'ซึ่งจัดโดยนักศึกษาเอกดนตรีสากล เพื่อกลุ่มเป้าหมายคือ "{target_description}"\n'
        "\n"
        "ขอให้เนื้อหามีความละเอียด เป็นมืออาชีพ และนำไปใช้จริงได้\n"
        f"- ระยะเวลาดำเนินโครงการ: {DEFAULT_TIMELINE}\n"
        f"- กรอบงบประมาณ: {DEFAULT_BUDGET}\n"
        "- stepByStepPlan ให้แบ่งตามช่วงเวลาเป็นลำดับ: ช่วงเตรียมงาน, ช่วงดำเนินกิจกรรม, ช่วงสรุปผล "
        "โดยระบุเดือนหรือสัปดาห์กำกับในแต่ละขั้นตอน\n"
        "- budgetEstimate ให้แจกแจงรายการค่าใช้จ่ายพร้อมตัวเลขให้อยู่ในกรอบงบประมาณ\n"
        "\n"
        f"{_DETAIL_FIELD_GUIDE}"
    )
    return GenerationPrompt(text, activity_detail_schema())


def build_custom_detail_prompt(user_text: str) -> GenerationPrompt:
    """Turn a free-form request into a complete proposal."""

    text = (
        "คุณเป็นอาจารย์ที่ปรึกษาด้านดนตรีสากลและกิจกรรมเพื่อสังคม\n"
        'ช่วยเขียน "ข้อเสนอโครงการ" (Project Proposal) อย่างละเอียด จากความต้องการของนักศึกษาต่อไปนี้:\n'
        f'"""\n{user_text}\n"""\n'
        "\n"
        "ข้อกำหนด:\n"
        "- วิเคราะห์กลุ่มเป้าหมายจากบริบทของข้อความ แล้วอธิบายใน targetAudienceDetail\n"
        "- หากข้อความระบุงบประมาณหรือระยะเวลาไว้ ให้ใช้ตัวเลขนั้นตรงตามที่ระบุทุกประการ ห้ามปรับเปลี่ยน\n"
        f"- หากไม่ได้ระบุทั้งงบประมาณและระยะเวลา ให้ใช้ค่าเริ่มต้น: ระยะเวลา {DEFAULT_TIMELINE} "
        f"และงบประมาณ {DEFAULT_BUDGET}\n"
        "- stepByStepPlan ให้แบ่งตามช่วงเวลา: ช่วงเตรียมงาน, ช่วงดำเนินกิจกรรม, ช่วงสรุปผล\n"
        "- เนื้อหาต้องเป็นมืออาชีพและนำไปใช้จริงได้\n"
        "\n"
        f"{_DETAIL_FIELD_GUIDE}"
    )
    return GenerationPrompt(text, activity_detail_schema())


def build_refine_prompt(detail: ActivityDetail, instruction: str) -> GenerationPrompt:
    """Round-trip an existing proposal through the model with an edit request."""

    text = (
        "คุณเป็นบรรณาธิการข้อเสนอโครงการกิจกรรมดนตรีเพื่อสังคม\n"
        "นี่คือข้อเสนอโครงการฉบับปัจจุบันในรูปแบบ JSON:\n"
        f"{_serialise_detail(detail)}\n"
        "\n"
        "คำสั่งแก้ไขจากผู้ใช้:\n"
        f'"""\n{instruction}\n"""\n'
        "\n"
        "ข้อกำหนด:\n"
        "- ปรับแก้ตามคำสั่งอย่างเคร่งครัด\n"
        "- คงโครงสร้างฟิลด์ทั้งหมดไว้ครบถ้วน ห้ามตัดฟิลด์ใดออก\n"
        "- หากการแก้ไขส่งผลต่อส่วนอื่น ให้ปรับส่วนนั้นให้สอดคล้องด้วย "
        "(เช่น ลดงบประมาณ ต้องลดรายการอุปกรณ์และขอบเขตงานตามไปด้วย)\n"
        "- ส่วนที่ไม่เกี่ยวข้องกับคำสั่งให้คงเนื้อหาเดิม\n"
        "\n"
        f"{_DETAIL_FIELD_GUIDE}"
    )
    return GenerationPrompt(text, activity_detail_schema())


__all__ = [
    "DEFAULT_BUDGET",
    "DEFAULT_TIMELINE",
    "GenerationPrompt",
    "IDEAS_PER_BATCH",
    "build_custom_detail_prompt",
    "build_detail_prompt",
    "build_ideas_prompt",
    "build_refine_prompt",
]
