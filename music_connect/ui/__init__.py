"""Music Connect Streamlit UI helpers."""

from __future__ import annotations

from .planner import SESSION_KEY, ensure_session, render_discover_tab, render_saved_tab

__all__ = [
    "SESSION_KEY",
    "ensure_session",
    "render_discover_tab",
    "render_saved_tab",
]
