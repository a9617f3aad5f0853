from datetime import datetime

from taskboard.reporting import COLUMNS, status_priority_figure, tasks_to_df

from .factories import make_task


def test_empty_frame_has_columns():
    df = tasks_to_df([])
    assert list(df.columns) == COLUMNS
    assert df.empty


def test_frame_rows():
    tasks = [make_task(created_at=datetime(2024, 5, 1, 12, 0)), make_task(id="t2", status="completed")]
    df = tasks_to_df(tasks)
    assert list(df.columns) == COLUMNS
    assert list(df["id"]) == ["t1", "t2"]
    assert df.loc[0, "created_at"].year == 2024
    assert df["created_at"].isna().iloc[1]


def test_figure_counts_by_priority_and_status():
    tasks = [make_task(), make_task(id="t2"), make_task(id="t3", priority="low", status="completed")]
    fig = status_priority_figure(tasks)
    by_name = {trace.name: list(trace.y) for trace in fig.data}
    assert by_name["High"] == [2, 0, 0]
    assert by_name["Low"] == [0, 0, 1]
    assert by_name["Medium"] == [0, 0, 0]
    assert fig.layout.barmode == "stack"
