import html
import os

import streamlit as st
from streamlit.errors import StreamlitAPIException

from taskboard.models import PRIORITY_LABELS, STATUS_LABELS, Task

THEME_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "assets", "theme.css")


def set_theme(
    page_title: str = "Team Taskboard",
    page_icon: str = "📋",
    layout: str = "wide",
    initial_sidebar_state: str = "expanded",
):
    """Configure the Streamlit page and inject the shared CSS.

    Call once at the top of each page. Streamlit only honours the first
    set_page_config of a run, so later calls just re-inject the CSS.
    """
    try:
        st.set_page_config(
            page_title=page_title,
            page_icon=page_icon,
            layout=layout,
            initial_sidebar_state=initial_sidebar_state,
        )
    except StreamlitAPIException:
        pass

    try:
        with open(THEME_FILE, "r", encoding="utf-8") as f:
            st.markdown(f"<style>{f.read()}</style>", unsafe_allow_html=True)
    except FileNotFoundError:
        st.error(f"Theme file not found at {THEME_FILE}.")


# Markup for the tb-* classes in assets/theme.css. Values come from users, so
# everything interpolated is escaped.

def badge_html(kind: str, value: str) -> str:
    """Pill for a priority or status; ``kind`` is "priority" or "status"."""
    labels = PRIORITY_LABELS if kind == "priority" else STATUS_LABELS
    label = labels.get(value, value)
    css = html.escape(f"tb-{kind}-{value}", quote=True)
    return f"<span class='tb-badge {css}'>{html.escape(label)}</span>"


def kpi_html(label: str, value) -> str:
    return (
        f"<div class='tb-kpi'><div class='tb-kpi-label'>{html.escape(label)}</div>"
        f"<div class='tb-kpi-value'>{html.escape(str(value))}</div></div>"
    )


def task_card_html(task: Task) -> str:
    created = task.created_at.date().isoformat() if task.created_at else ""
    return (
        f"<div class='tb-card'>"
        f"<div class='tb-card-title'>{html.escape(task.title)}"
        f"{badge_html('priority', task.priority)}{badge_html('status', task.status)}</div>"
        f"<div class='tb-card-meta'>📝 {html.escape(task.created_by)} • "
        f"👤 {html.escape(task.assigned_to)} • 🕒 {created}</div>"
        f"</div>"
    )
