import streamlit as st

from taskboard.runtime import enter_view, go, sidebar_account
from taskboard.session import HOME, LOGIN, MARKDOWN_EDITOR, SIGNUP, TASKS, VERIFY, AuthState
from taskboard.theme import set_theme

set_theme()

ctx = enter_view(HOME)
sidebar_account(ctx)

# Signed-in users go straight to where they belong.
state = ctx.state
if state == AuthState.VERIFIED:
    go(TASKS)
elif state == AuthState.UNVERIFIED:
    go(VERIFY)

st.title("Team Taskboard")
st.markdown("<div class='tb-muted'>Track who is doing what, and how far along it is.</div>", unsafe_allow_html=True)

c1, c2, c3 = st.columns(3)
with c1:
    if st.button("Sign in", use_container_width=True):
        go(LOGIN)
with c2:
    if st.button("Create an account", use_container_width=True):
        go(SIGNUP)
with c3:
    if st.button("Markdown editor", use_container_width=True):
        go(MARKDOWN_EDITOR)
