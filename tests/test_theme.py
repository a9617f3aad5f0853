import streamlit as st
from streamlit.errors import StreamlitAPIException

from taskboard import theme

from .factories import make_task


def test_set_theme_injects_css(monkeypatch):
    calls = {}
    monkeypatch.setattr(st, "set_page_config", lambda **kw: calls.setdefault("config", kw))
    monkeypatch.setattr(st, "markdown", lambda body, **kw: calls.setdefault("css", body))

    theme.set_theme(page_title="Tasks")

    assert calls["config"]["page_title"] == "Tasks"
    assert calls["config"]["layout"] == "wide"
    assert calls["css"].startswith("<style>")
    assert ".tb-card" in calls["css"]


def test_set_theme_tolerates_second_page_config(monkeypatch):
    def already_set(**kw):
        raise StreamlitAPIException("set_page_config can only be called once")

    injected = []
    monkeypatch.setattr(st, "set_page_config", already_set)
    monkeypatch.setattr(st, "markdown", lambda body, **kw: injected.append(body))

    theme.set_theme()

    assert len(injected) == 1


def test_badges_use_labels_and_classes():
    assert theme.badge_html("priority", "high") == "<span class='tb-badge tb-priority-high'>High</span>"
    assert ">In Progress<" in theme.badge_html("status", "in-progress")


def test_task_card_escapes_user_text():
    card = theme.task_card_html(make_task(title="<script>x</script>", assigned_to="bob & co"))
    assert "<script>" not in card
    assert "&lt;script&gt;" in card
    assert "bob &amp; co" in card
    assert "tb-priority-high" in card


def test_kpi():
    assert "<div class='tb-kpi-value'>3</div>" in theme.kpi_html("Total", 3)
