from datetime import timedelta

import streamlit as st

from taskboard.config import get_config
from taskboard.errors import AuthRequiredFailure, TaskAccessFailure, ValidationFailure
from taskboard.filtering import filter_tasks, status_counts
from taskboard.models import ALL, PRIORITIES, PRIORITY_LABELS, STATUS_LABELS, STATUSES, TaskCandidate
from taskboard.reporting import status_priority_figure, tasks_to_df
from taskboard.runtime import (
    enter_view,
    get_backend,
    get_task_cache,
    get_task_service,
    get_view_resources,
    go,
    sidebar_account,
)
from taskboard.session import TASKS
from taskboard.task_service import RealtimeBridge, load_task_view
from taskboard.theme import kpi_html, set_theme, task_card_html

set_theme(page_title="Tasks", page_icon="📋")

# Gate before anything touches task data.
ctx = enter_view(TASKS)
sidebar_account(ctx)

service = get_task_service()
cache = get_task_cache()
get_view_resources().acquire(TASKS, "realtime", lambda: RealtimeBridge(get_backend(), cache).start())
refresh_every = timedelta(seconds=get_config().tasks_refresh_seconds)

PRIORITY_OPTIONS = [ALL] + list(PRIORITIES)
STATUS_OPTIONS = [ALL] + list(STATUSES)


def _label(value: str) -> str:
    if value == ALL:
        return "All"
    return PRIORITY_LABELS.get(value) or STATUS_LABELS.get(value) or value


st.title("Tasks")
st.markdown("<div class='tb-muted'>View and manage all tasks</div>", unsafe_allow_html=True)

fc1, fc2, fc3 = st.columns([2.2, 1, 1])
with fc1:
    search = st.text_input("Search Tasks", placeholder="Search by title, creator, or assignee...")
with fc2:
    priority_filter = st.selectbox("Priority", options=PRIORITY_OPTIONS, format_func=_label)
with fc3:
    status_filter = st.selectbox("Status", options=STATUS_OPTIONS, format_func=_label)

with st.expander("➕ New task", expanded=False):
    with st.form("new-task", clear_on_submit=True):
        title = st.text_input("Title")
        description = st.text_area("Description", height=80)
        nc1, nc2, nc3 = st.columns(3)
        with nc1:
            assigned_to = st.text_input("Assign to")
        with nc2:
            priority = st.selectbox("Priority", options=list(PRIORITIES), index=1, format_func=_label)
        with nc3:
            status = st.selectbox("Status", options=list(STATUSES), format_func=_label)
        if st.form_submit_button("Create task"):
            candidate = TaskCandidate(
                title=title,
                description=description,
                created_by=ctx.session.display_name,
                assigned_to=assigned_to,
                priority=priority,
                status=status,
            )
            try:
                service.create(candidate)
            except ValidationFailure as e:
                for msg in e.field_errors.values():
                    st.error(msg)
            except AuthRequiredFailure as e:
                go(e.redirect_to)
            except TaskAccessFailure as e:
                st.toast(f"Could not create task: {e}", icon="⚠️")
            else:
                st.toast("Task created", icon="✅")


def _change_status(task_id: str, key: str):
    try:
        service.update_status(task_id, st.session_state[key])
    except AuthRequiredFailure:
        st.session_state.tasks_redirect = True
    except (TaskAccessFailure, ValidationFailure) as e:
        st.toast(f"Could not update status: {e}", icon="⚠️")


@st.fragment(run_every=refresh_every)
def task_list():
    """Re-runs on its own timer; only re-fetches when a change event marked the cache stale."""
    if st.session_state.pop("tasks_redirect", False):
        go(TASKS)
    try:
        target, tasks = load_task_view(ctx, service, cache)
    except TaskAccessFailure as e:
        st.error(f"Could not load tasks: {e}")
        tasks, target = cache.snapshot, None
    if target is not None:
        go(target)

    counts = status_counts(tasks)
    k0, k1, k2, k3 = st.columns(4)
    for col, label, value in (
        (k0, "Total", len(tasks)),
        (k1, STATUS_LABELS["pending"], counts["pending"]),
        (k2, STATUS_LABELS["in-progress"], counts["in-progress"]),
        (k3, STATUS_LABELS["completed"], counts["completed"]),
    ):
        col.markdown(kpi_html(label, value), unsafe_allow_html=True)

    visible = filter_tasks(tasks, search, priority_filter, status_filter)
    tab_list, tab_table, tab_chart = st.tabs(["All Tasks", "Table", "Breakdown"])

    with tab_list:
        if not visible:
            st.info("No tasks match the current filters.")
        for t in visible:
            c_card, c_status, c_delete = st.columns([5, 1.4, 0.5])
            with c_card:
                st.markdown(task_card_html(t), unsafe_allow_html=True)
            with c_status:
                key = f"status-{t.id}"
                st.session_state[key] = t.status
                st.selectbox(
                    "Status",
                    options=list(STATUSES),
                    key=key,
                    format_func=_label,
                    label_visibility="collapsed",
                    on_change=_change_status,
                    args=(t.id, key),
                )
            with c_delete:
                if st.button("🗑", key=f"delete-{t.id}", help="Delete task"):
                    try:
                        service.delete(t.id)
                    except AuthRequiredFailure as e:
                        go(e.redirect_to)
                    except TaskAccessFailure as e:
                        st.toast(f"Could not delete task: {e}", icon="⚠️")
                    else:
                        st.toast("Task deleted", icon="🗑")
                        st.rerun(scope="fragment")

    with tab_table:
        df = tasks_to_df(visible)
        st.dataframe(df.drop(columns=["id"]), use_container_width=True, hide_index=True)
        st.download_button(
            "Download CSV",
            data=df.to_csv(index=False).encode("utf-8"),
            file_name="tasks.csv",
            mime="text/csv",
        )

    with tab_chart:
        st.plotly_chart(status_priority_figure(visible), use_container_width=True)


task_list()
