"""Streamlit rendering for the discover, proposal and saved views."""

from __future__ import annotations

import logging
from typing import List, Optional

import streamlit as st

from music_connect.agents import ProposalGenerator
from music_connect.core.exporters import detail_to_markdown
from music_connect.core.llm import get_default_client
from music_connect.core.proposal_store import ProposalStore
from music_connect.core.storage import JsonFileStorage
from music_connect.schemas import TARGET_GROUPS, ActivityDetail, ActivitySummary, Difficulty
from music_connect.workflows import DetailStatus, ProposalSession, WorkflowStatus

SESSION_KEY = "_proposal_session"

_DIFFICULTY_BADGES = {
    Difficulty.LOW: "🟢",
    Difficulty.MEDIUM: "🟡",
    Difficulty.HIGH: "🔴",
}

_LIST_FIELDS = ("objectives", "step_by_step_plan", "required_equipment", "evaluation_metrics")
_FIELD_LABELS = {
    "title": "ชื่อกิจกรรม",
    "full_description": "รายละเอียดโดยย่อ",
    "objectives": "วัตถุประสงค์",
    "target_audience_detail": "วิเคราะห์กลุ่มเป้าหมาย",
    "step_by_step_plan": "ขั้นตอนการดำเนินงาน",
    "required_equipment": "อุปกรณ์ที่ต้องใช้",
    "budget_estimate": "งบประมาณ",
    "evaluation_metrics": "การวัดผล",
}

_LOGGER = logging.getLogger(__name__)


def ensure_session() -> ProposalSession:
    """Return the session for this browser tab, creating it on first use."""

    session = st.session_state.get(SESSION_KEY)
    if not isinstance(session, ProposalSession):
        store = ProposalStore(JsonFileStorage())
        store.load()
        generator = ProposalGenerator()
        if not get_default_client().is_configured:
            _LOGGER.warning("GEMINI_API_KEY is not set; generation requests will fail")
        session = ProposalSession(store=store, generator=generator)
        st.session_state[SESSION_KEY] = session
    return session


def _render_target_picker(session: ProposalSession) -> None:
    st.subheader("👥 เลือกกลุ่มเป้าหมายชุมชน")
    columns = st.columns(len(TARGET_GROUPS))
    for column, info in zip(columns, TARGET_GROUPS):
        selected = session.target_group is info.group
        if column.button(
            f"{info.icon} {info.label}",
            key=f"target_{info.group.value}",
            type="primary" if selected else "secondary",
            use_container_width=True,
        ):
            with st.spinner("AI กำลังระดมสมองคิดกิจกรรมที่น่าสนใจ..."):
                session.discover(info.group)


def _render_idea_card(session: ProposalSession, idea: ActivitySummary, index: int) -> None:
    with st.container(border=True):
        badge = _DIFFICULTY_BADGES.get(idea.difficulty, "")
        st.caption(f"{badge} ความยาก: {idea.difficulty.value} · ⏱ {idea.duration}")
        st.markdown(f"**{idea.title}**")
        st.write(idea.description)
        if idea.tags:
            st.caption(" ".join(f"#{tag}" for tag in idea.tags[:3]))
        st.caption(idea.impact_area)
        if st.button("ดูแผนงาน →", key=f"idea_{index}_{idea.id}"):
            with st.spinner("AI กำลังวิเคราะห์ข้อมูลและเขียนข้อเสนอโครงการ..."):
                session.view_detail(idea)


def _render_ideas(session: ProposalSession) -> None:
    if session.error:
        st.error(session.error)

    if not session.ideas:
        if session.target_group is None:
            st.info("เลือกกลุ่มเป้าหมายด้านบนเพื่อเริ่มสร้างกิจกรรม")
        return

    columns = st.columns(3)
    for index, idea in enumerate(session.ideas):
        with columns[index % 3]:
            _render_idea_card(session, idea, index)

    loading_more = session.status is WorkflowStatus.LOADING_MORE
    if st.button("➕ หากิจกรรมเพิ่มเติม", key="ideas_load_more", disabled=loading_more):
        with st.spinner("กำลังคิดเพิ่ม..."):
            session.load_more()
        st.rerun()


def _render_custom_prompt(session: ProposalSession) -> None:
    st.subheader("✨ สร้างแผนกิจกรรมจากไอเดียของคุณ")
    text = st.text_area(
        "อธิบายกิจกรรมที่อยากทำ",
        key="custom_prompt_entry",
        placeholder="เช่น ประกวดดนตรีสากล มัธยมศึกษา งบ 100,000 บาท",
    )
    if st.button("สร้างแผนกิจกรรม", key="custom_prompt_submit", disabled=not (text or "").strip()):
        with st.spinner("AI กำลังเขียนข้อเสนอโครงการ..."):
            session.custom_generate(text)
    if session.custom_error:
        st.error(session.custom_error)


def _render_list(items: List[str], *, numbered: bool = False) -> None:
    if numbered:
        st.markdown("\n".join(f"{index}. {item}" for index, item in enumerate(items, start=1)))
    else:
        st.markdown("\n".join(f"- {item}" for item in items))


def _render_detail_body(detail: ActivityDetail) -> None:
    st.markdown(f"### 🎵 {_FIELD_LABELS['full_description']}")
    st.write(detail.full_description)
    st.markdown(f"### 🎯 {_FIELD_LABELS['objectives']}")
    _render_list(detail.objectives)
    if detail.target_audience_detail:
        st.markdown(f"### 📊 {_FIELD_LABELS['target_audience_detail']}")
        st.info(detail.target_audience_detail)
    st.markdown(f"### 📋 {_FIELD_LABELS['step_by_step_plan']}")
    _render_list(detail.step_by_step_plan, numbered=True)
    st.markdown(f"### 🎸 {_FIELD_LABELS['required_equipment']}")
    _render_list(detail.required_equipment)
    if detail.budget_estimate:
        st.markdown(f"### 💰 {_FIELD_LABELS['budget_estimate']}")
        st.write(detail.budget_estimate)
    if detail.evaluation_metrics:
        st.markdown(f"### ✅ {_FIELD_LABELS['evaluation_metrics']}")
        _render_list(detail.evaluation_metrics)


def _reset_editor_state() -> None:
    for key in [key for key in st.session_state if str(key).startswith("edit_field_")]:
        del st.session_state[key]


def _render_editor(session: ProposalSession, draft: ActivityDetail) -> None:
    for name, label in _FIELD_LABELS.items():
        value = getattr(draft, name)
        key = f"edit_field_{name}"
        if name in _LIST_FIELDS:
            edited: object = st.text_area(f"{label} (หนึ่งรายการต่อบรรทัด)", value="\n".join(value), key=key)
        elif name == "full_description":
            edited = st.text_area(label, value=value, key=key)
        else:
            edited = st.text_input(label, value=value, key=key)
        if edited != ("\n".join(value) if name in _LIST_FIELDS else value):
            session.update_field(name, edited)

    save_col, cancel_col = st.columns(2)
    if save_col.button("💾 บันทึกการแก้ไข", key="edit_save", type="primary"):
        session.save_edit()
        _reset_editor_state()
        st.rerun()
    if cancel_col.button("↩️ ยกเลิก", key="edit_cancel"):
        session.cancel_edit()
        _reset_editor_state()
        st.rerun()


def _render_refine_control(session: ProposalSession) -> None:
    view = session.detail_view
    instruction = st.text_input(
        "ให้ AI ปรับแผนงาน",
        key="refine_instruction",
        placeholder="เช่น ลดงบประมาณเหลือ 10,000 บาท",
    )
    if st.button("🪄 ปรับแผน", key="refine_submit", disabled=not (instruction or "").strip()):
        with st.spinner("AI กำลังปรับแผนงาน..."):
            session.refine(instruction)
        _reset_editor_state()
        st.rerun()
    if view.refine_error:
        st.warning(view.refine_error)


def _render_detail(session: ProposalSession) -> None:
    view = session.detail_view
    if not view.is_open:
        return

    st.divider()
    header, close_col = st.columns([6, 1])
    if close_col.button("✖️ ปิด", key="detail_close"):
        session.close_detail()
        st.rerun()

    if view.status is DetailStatus.LOADING:
        header.subheader("กำลังร่างแผนกิจกรรม...")
        return
    if view.status is DetailStatus.FAILED:
        header.subheader("แผนกิจกรรม")
        st.error(view.error or "ไม่สามารถโหลดข้อมูลได้")
        return

    displayed: Optional[ActivityDetail] = view.displayed
    if displayed is None:
        return
    header.subheader(displayed.title)
    header.caption("แผนการจัดกิจกรรมฉบับสมบูรณ์")

    actions = st.columns(3)
    saved = session.is_current_saved()
    if actions[0].button("❤️ เลิกบันทึก" if saved else "🤍 บันทึก", key="detail_toggle_save", disabled=view.is_editing):
        session.toggle_save()
        st.rerun()
    if not view.is_editing and actions[1].button("✏️ แก้ไข", key="detail_edit"):
        session.start_edit()
        _reset_editor_state()
        st.rerun()
    actions[2].download_button(
        "⬇️ ดาวน์โหลด",
        data=detail_to_markdown(displayed),
        file_name=f"{displayed.title}.md",
        mime="text/markdown",
        key="detail_download",
    )
    if view.save_error:
        st.error(view.save_error)

    _render_refine_control(session)

    if view.is_editing:
        _render_editor(session, displayed)
    else:
        _render_detail_body(displayed)
        with st.expander("📤 แชร์"):
            st.code(session.share_text() or "", language=None)


def _render_saved(session: ProposalSession) -> None:
    saved = session.saved
    if not saved:
        st.info("ยังไม่มีกิจกรรมที่บันทึกไว้")
        return

    for item in saved:
        with st.container(border=True):
            st.markdown(f"**{item.title}**")
            if item.target_group_label:
                st.caption(item.target_group_label)
            open_col, delete_col = st.columns(2)
            if open_col.button("เปิดดู", key=f"saved_open_{item.id}"):
                session.open_saved(item.id)
                st.rerun()
            if delete_col.button("ลบ", key=f"saved_delete_{item.id}"):
                session.delete_saved(item.id)
                st.rerun()


def render_discover_tab(container) -> None:
    session = ensure_session()
    with container:
        _render_target_picker(session)
        _render_ideas(session)
        _render_custom_prompt(session)
        _render_detail(session)


def render_saved_tab(container) -> None:
    session = ensure_session()
    with container:
        _render_saved(session)


__all__ = ["SESSION_KEY", "ensure_session", "render_discover_tab", "render_saved_tab"]
