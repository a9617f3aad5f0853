import streamlit as st

from taskboard.auth_flow import LoginFlow, describe_failure
from taskboard.errors import BackendRequestFailure, ValidationFailure
from taskboard.runtime import enter_view, get_backend, go, sidebar_account
from taskboard.session import LOGIN, SIGNUP, TASKS
from taskboard.theme import set_theme

set_theme(page_title="Sign in", page_icon="🔐", layout="centered")

ctx = enter_view(LOGIN)
sidebar_account(ctx)
flow = LoginFlow(get_backend().auth)

st.markdown("<div class='tb-auth'>", unsafe_allow_html=True)
st.title("Welcome Back")

with st.form("login-form"):
    email = st.text_input("Email", placeholder="your.email@outlook.com")
    password = st.text_input("Password", type="password")
    submitted = st.form_submit_button("Sign in", use_container_width=True)

if submitted:
    try:
        target = flow.sign_in(ctx, email, password)
    except ValidationFailure as e:
        for msg in e.field_errors.values():
            st.error(msg)
    except BackendRequestFailure as e:
        st.error(describe_failure(e))
    else:
        if target == TASKS:
            st.toast("Successfully signed in", icon="✅")
        go(target)

st.caption("No account yet?")
if st.button("Create an account"):
    go(SIGNUP)
st.markdown("</div>", unsafe_allow_html=True)
