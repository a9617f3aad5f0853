"""Streamlit wiring: shared backend, per-browser context and page routing."""

from __future__ import annotations

import logging

import streamlit as st

from taskboard.backend import BackendClient
from taskboard.config import get_config
from taskboard.errors import BackendRequestFailure
from taskboard.logging_setup import setup_logging
from taskboard.session import LOGIN, MARKDOWN_EDITOR, SIGNUP, TASKS, VERIFY, SessionContext, ViewResources, redirect_for
from taskboard.task_service import TaskAccessService, TaskCache

logger = logging.getLogger(__name__)

# Paths are relative to the entry script, as st.switch_page expects.
VIEW_PAGES = {
    LOGIN: "pages/1_Login.py",
    SIGNUP: "pages/2_Signup.py",
    VERIFY: "pages/3_Verify.py",
    TASKS: "pages/4_Tasks.py",
    MARKDOWN_EDITOR: "pages/5_Markdown_Editor.py",
}


@st.cache_resource
def get_backend() -> BackendClient:
    """One backend client (and change feed) per server process."""
    config = get_config()
    setup_logging(log_dir=config.log_dir, console_level=config.log_level)
    logger.info("backend starting on %s", config.database_url.split("@")[-1])
    return BackendClient.from_config(config)


def get_context() -> SessionContext:
    if "taskboard_ctx" not in st.session_state:
        st.session_state.taskboard_ctx = SessionContext(get_backend().auth)
    return st.session_state.taskboard_ctx


def get_view_resources() -> ViewResources:
    if "taskboard_views" not in st.session_state:
        st.session_state.taskboard_views = ViewResources()
    return st.session_state.taskboard_views


def get_task_cache() -> TaskCache:
    if "task_cache" not in st.session_state:
        st.session_state.task_cache = TaskCache()
    return st.session_state.task_cache


def get_task_service() -> TaskAccessService:
    return TaskAccessService(get_backend(), get_context())


def go(view: str) -> None:
    st.switch_page(VIEW_PAGES[view])


def enter_view(view: str) -> SessionContext:
    """Release other views' resources and apply the session gate.

    Redirects (and stops the script) when the current session may not see
    ``view``.
    """
    get_view_resources().enter(view)
    ctx = get_context()
    try:
        state = ctx.state
    except BackendRequestFailure as e:
        st.error(f"Could not check your session: {e}")
        st.stop()
    target = redirect_for(state, view)
    if target is not None:
        logger.debug("redirecting %s -> %s", view, target)
        go(target)
    return ctx


def sidebar_account(ctx: SessionContext) -> None:
    session = ctx.session
    with st.sidebar:
        if session is None:
            st.caption("Not signed in")
            return
        st.caption(f"Signed in as **{session.display_name}**")
        if st.button("Sign out", key="sidebar-sign-out"):
            try:
                ctx.teardown()
            except BackendRequestFailure as e:
                # The local session is gone either way.
                logger.warning("sign-out request failed: %s", e)
            get_view_resources().enter(LOGIN)
            st.session_state.pop("task_cache", None)
            go(LOGIN)
