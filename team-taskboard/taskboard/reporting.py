from __future__ import annotations

from typing import Dict, Sequence

import pandas as pd
import plotly.graph_objects as go

from taskboard.models import PRIORITIES, PRIORITY_LABELS, STATUS_LABELS, STATUSES, Task

COLUMNS = ["id", "title", "created_by", "assigned_to", "priority", "status", "created_at"]

PRIORITY_COLORS = {"low": "#55efc4", "medium": "#74b9ff", "high": "#e17055"}


def tasks_to_df(tasks: Sequence[Task]) -> pd.DataFrame:
    if not tasks:
        return pd.DataFrame(columns=COLUMNS)
    df = pd.DataFrame([t.to_dict() for t in tasks])[COLUMNS]
    df["created_at"] = pd.to_datetime(df["created_at"], errors="coerce", utc=True)
    return df


def status_priority_figure(tasks: Sequence[Task]) -> go.Figure:
    """Stacked bar of task counts per status, split by priority."""
    counts: Dict[str, Dict[str, int]] = {p: {s: 0 for s in STATUSES} for p in PRIORITIES}
    for t in tasks:
        if t.priority in counts and t.status in counts[t.priority]:
            counts[t.priority][t.status] += 1
    fig = go.Figure()
    for p in PRIORITIES:
        fig.add_bar(
            x=[STATUS_LABELS[s] for s in STATUSES],
            y=[counts[p][s] for s in STATUSES],
            name=PRIORITY_LABELS[p],
            marker_color=PRIORITY_COLORS[p],
        )
    fig.update_layout(
        barmode="stack",
        template="plotly_white",
        margin=dict(l=6, r=6, t=30, b=10),
        height=300,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig
