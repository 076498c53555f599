"""Streamlit entry point for the Music Connect application."""
from __future__ import annotations

from typing import Sequence

import streamlit as st
from dotenv import load_dotenv

# Module-level defaults in music_connect read the environment at import time.
load_dotenv()

from music_connect.ui import ensure_session, render_discover_tab, render_saved_tab  # noqa: E402


_TAB_ORDER: Sequence[str] = ("สร้างกิจกรรม", "กิจกรรมที่บันทึกไว้")


def configure() -> None:
    """Configure global Streamlit settings."""

    st.set_page_config(page_title="Music Connect", page_icon="🎵", layout="wide")


def render() -> None:
    """Render the Music Connect shell."""

    session = ensure_session()

    st.title("🎵 Music Connect")
    st.caption("ผู้ช่วย AI สำหรับนักศึกษาเอกดนตรีสากล ออกแบบกิจกรรม Community Engagement")

    labels = list(_TAB_ORDER)
    labels[1] = f"{labels[1]} ({len(session.saved)})"
    discover_tab, saved_tab = st.tabs(labels)

    render_discover_tab(discover_tab)
    render_saved_tab(saved_tab)


if __name__ == "__main__":
    configure()
    render()
