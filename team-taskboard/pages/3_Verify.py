import streamlit as st

from taskboard.auth_flow import VerifyFlow, describe_failure
from taskboard.config import get_config
from taskboard.errors import AuthRequiredFailure, BackendRequestFailure, ValidationFailure
from taskboard.runtime import enter_view, get_backend, go, sidebar_account
from taskboard.session import VERIFY
from taskboard.theme import set_theme

set_theme(page_title="Verify Your Email", page_icon="✉️", layout="centered")

ctx = enter_view(VERIFY)
sidebar_account(ctx)
code_length = get_config().otp_length
flow = VerifyFlow(get_backend().auth, code_length=code_length)

st.title("Verify Your Email")
st.markdown(
    f"<div class='tb-muted'>Enter the {code_length}-digit code sent to <b>{ctx.session.email}</b></div>",
    unsafe_allow_html=True,
)

with st.form("verify-form"):
    code = st.text_input("Verification code", max_chars=code_length, placeholder="0" * code_length)
    submitted = st.form_submit_button("Verify Email", use_container_width=True)

if submitted:
    try:
        target = flow.verify(ctx, code)
    except ValidationFailure as e:
        st.error(e.field_errors.get("code", str(e)))
    except AuthRequiredFailure as e:
        go(e.redirect_to)
    except BackendRequestFailure as e:
        st.error(describe_failure(e))
    else:
        st.toast("Email verified successfully", icon="✅")
        go(target)

if st.button("Send a new code"):
    try:
        flow.resend(ctx)
    except AuthRequiredFailure as e:
        go(e.redirect_to)
    except BackendRequestFailure as e:
        st.error(describe_failure(e))
    else:
        st.success("A new code is on its way.")
