from datetime import date

import streamlit as st

from taskboard.auth_flow import DUPLICATE_EMAIL_MESSAGE, GENDERS, SignupFlow, SignupForm, describe_failure
from taskboard.config import get_config
from taskboard.errors import BackendRequestFailure, DuplicateResourceFailure, ValidationFailure
from taskboard.runtime import enter_view, get_backend, go, sidebar_account
from taskboard.session import LOGIN, SIGNUP
from taskboard.theme import set_theme

set_theme(page_title="Create an Account", page_icon="📝", layout="centered")

ctx = enter_view(SIGNUP)
sidebar_account(ctx)
config = get_config()
flow = SignupFlow(get_backend().auth, security_code=config.signup_security_code)

if "signup_email_taken" not in st.session_state:
    st.session_state.signup_email_taken = False
if "signup_errors" not in st.session_state:
    st.session_state.signup_errors = {}


@st.dialog("Account Created Successfully")
def confirmation_dialog(email: str):
    st.markdown(f"Your account has been created. A verification code was sent to **{email}**.")
    st.caption("Sign in, then enter the code to activate your account.")
    if st.button("Go to Login", use_container_width=True):
        go(LOGIN)


@st.dialog("Email Already Registered")
def duplicate_email_dialog():
    st.markdown("This email address is already registered in our system.")
    st.caption("Use a different email address, or sign in if you already have an account.")
    if st.button("Try Another Email", use_container_width=True):
        st.rerun()


def _check_email():
    email = (st.session_state.get("signup_email") or "").strip()
    st.session_state.signup_email_taken = False
    if not email:
        return
    try:
        st.session_state.signup_email_taken = flow.email_is_registered(email)
    except BackendRequestFailure:
        # Advisory only; submission checks again.
        pass


def _field_error(name: str):
    msg = st.session_state.signup_errors.get(name)
    if msg:
        st.caption(f":red[{msg}]")


st.title("Create an Account")
st.markdown("<div class='tb-muted'>Fill in your details to get started</div>", unsafe_allow_html=True)

st.subheader("Contact Information")
st.text_input("Email", key="signup_email", on_change=_check_email, placeholder="your.email@outlook.com")
if st.session_state.signup_email_taken:
    st.error(DUPLICATE_EMAIL_MESSAGE)
_field_error("email")

with st.form("signup-form"):
    contact_number = st.text_input("Contact number", placeholder="+15551234567")
    _field_error("contact_number")
    address = st.text_area("Address", height=80)
    _field_error("address")

    st.subheader("Personal Information")
    c1, c2 = st.columns(2)
    with c1:
        username = st.text_input("Username")
        _field_error("username")
    with c2:
        full_name = st.text_input("Full name")
        _field_error("full_name")
    password = st.text_input("Password", type="password")
    _field_error("password")
    c3, c4 = st.columns(2)
    with c3:
        birthdate = st.date_input("Birthdate", value=None, min_value=date(1900, 1, 1), max_value=date.today())
        _field_error("birthdate")
    with c4:
        gender = st.selectbox("Gender", options=list(GENDERS), index=2, format_func=str.title)
        _field_error("gender")

    st.subheader("Additional Information")
    position = st.text_input("Position")
    _field_error("position")
    security_code = st.text_input("Security code", type="password") if config.signup_security_code else ""
    _field_error("security_code")

    submitted = st.form_submit_button(
        "Create Account", use_container_width=True, disabled=st.session_state.signup_email_taken
    )

if submitted:
    form = SignupForm(
        username=username,
        email=st.session_state.get("signup_email") or "",
        password=password,
        full_name=full_name,
        contact_number=contact_number,
        birthdate=birthdate.isoformat() if birthdate else "",
        address=address,
        gender=gender,
        position=position,
        security_code=security_code,
    )
    try:
        user = flow.submit(form)
    except ValidationFailure as e:
        st.session_state.signup_errors = e.field_errors
        st.rerun()
    except DuplicateResourceFailure:
        st.session_state.signup_email_taken = True
        st.session_state.signup_errors = {}
        duplicate_email_dialog()
    except BackendRequestFailure as e:
        st.session_state.signup_errors = {}
        st.error(describe_failure(e))
    else:
        st.session_state.signup_errors = {}
        confirmation_dialog(user["email"])

st.caption("Already have an account?")
if st.button("Sign in"):
    go(LOGIN)
