from datetime import date, timedelta

import pytest

from taskboard.auth_flow import (
    RATE_LIMIT_MESSAGE,
    LoginFlow,
    SignupFlow,
    VerifyFlow,
    describe_failure,
    validate_signup,
)
from taskboard.backend import SIGNED_IN, SIGNED_OUT, USER_UPDATED, BackendClient, Outbox
from taskboard.errors import AuthRequiredFailure, BackendRequestFailure, DuplicateResourceFailure, ValidationFailure
from taskboard.session import TASKS, VERIFY, AuthState

from .factories import PASSWORD, make_form


# ----- local validation -----

def test_valid_form_is_normalised():
    form = validate_signup(make_form(email="  Alice@Example.COM ", contact_number="+1 (555) 123-4567"))
    assert form.email == "alice@example.com"
    assert form.contact_number == "+15551234567"


@pytest.mark.parametrize(
    "field, value",
    [
        ("username", "ab"),
        ("username", "has space"),
        ("email", "not-an-email"),
        ("password", "short1"),
        ("password", "lettersonly"),
        ("full_name", "A"),
        ("contact_number", "12345"),
        ("contact_number", "phone-number"),
        ("birthdate", ""),
        ("birthdate", "12/04/1990"),
        ("gender", "unknown"),
        ("position", ""),
    ],
)
def test_invalid_field_is_reported(field, value):
    with pytest.raises(ValidationFailure) as exc:
        validate_signup(make_form(**{field: value}))
    assert field in exc.value.field_errors


def test_future_birthdate_is_rejected():
    with pytest.raises(ValidationFailure) as exc:
        validate_signup(make_form(birthdate="2030-01-02"), today=date(2026, 1, 1))
    assert exc.value.field_errors["birthdate"] == "Birthdate cannot be in the future"


def test_security_code_only_checked_when_configured():
    validate_signup(make_form(security_code=""))
    with pytest.raises(ValidationFailure) as exc:
        validate_signup(make_form(security_code="nope"), security_code="hrd712")
    assert list(exc.value.field_errors) == ["security_code"]
    validate_signup(make_form(security_code="hrd712"), security_code="hrd712")


# ----- signup -----

def test_signup_sends_a_code(backend, outbox):
    user = SignupFlow(backend.auth).submit(make_form())
    assert user["email"] == "alice@example.com"
    assert user["email_confirmed_at"] is None
    code = outbox.last_code("alice@example.com")
    assert code is not None and len(code) == 6 and code.isdigit()


def test_signup_stores_profile(backend):
    SignupFlow(backend.auth).submit(make_form())
    profile = backend.auth.find_profile_by_email("ALICE@example.com")
    assert profile["username"] == "alice_w"
    assert profile["position"] == "Engineer"


def test_duplicate_email_is_rejected_without_second_account(backend, signed_up):
    flow = SignupFlow(backend.auth)
    assert flow.email_is_registered("alice@example.com")
    with pytest.raises(DuplicateResourceFailure):
        flow.submit(make_form(username="other_alice"))
    assert backend.auth.account_count("alice@example.com") == 1


def test_duplicate_email_caught_by_backend_when_precheck_is_passed(backend, signed_up, monkeypatch):
    flow = SignupFlow(backend.auth)
    # Simulate a second submission racing past the advisory check.
    monkeypatch.setattr(flow, "email_is_registered", lambda email: False)
    with pytest.raises(DuplicateResourceFailure):
        flow.submit(make_form(username="other_alice"))
    assert backend.auth.account_count("alice@example.com") == 1


def test_duplicate_failure_message():
    assert describe_failure(DuplicateResourceFailure("email", "a@b.co")) == "This email is already registered"


def test_invalid_signup_never_reaches_backend(backend):
    with pytest.raises(ValidationFailure):
        SignupFlow(backend.auth).submit(make_form(email="bad"))
    assert backend.auth.account_count("bad") == 0


# ----- login -----

def test_unverified_login_goes_to_verification(context, signed_up):
    target = LoginFlow(context.identity).sign_in(context, signed_up.email, PASSWORD)
    assert target == VERIFY
    assert context.state == AuthState.UNVERIFIED


def test_wrong_password(context, signed_up):
    with pytest.raises(BackendRequestFailure) as exc:
        LoginFlow(context.identity).sign_in(context, signed_up.email, "wrongpass1")
    assert exc.value.code == "invalid_credentials"
    assert context.state == AuthState.UNAUTHENTICATED


def test_unknown_user(context):
    with pytest.raises(BackendRequestFailure):
        LoginFlow(context.identity).sign_in(context, "ghost@example.com", PASSWORD)


def test_empty_login_fields(context):
    with pytest.raises(ValidationFailure) as exc:
        LoginFlow(context.identity).sign_in(context, "", "")
    assert set(exc.value.field_errors) == {"email", "password"}


def test_verified_login_goes_to_tasks(verified_context):
    verified_context.teardown()
    target = LoginFlow(verified_context.identity).sign_in(verified_context, "alice@example.com", PASSWORD)
    assert target == TASKS
    assert verified_context.state == AuthState.VERIFIED


def test_sign_out_revokes_the_session(verified_context):
    token = verified_context.session.access_token
    LoginFlow(verified_context.identity).sign_out(verified_context)
    assert verified_context.state == AuthState.UNAUTHENTICATED
    assert verified_context.identity.get_session(token) is None


# ----- verification -----

def test_verify_confirms_the_session(unverified_context, outbox):
    code = outbox.last_code("alice@example.com")
    target = VerifyFlow(unverified_context.identity).verify(unverified_context, code)
    assert target == TASKS
    assert unverified_context.state == AuthState.VERIFIED


def test_verify_retires_the_unverified_token(unverified_context, outbox):
    old_token = unverified_context.session.access_token
    VerifyFlow(unverified_context.identity).verify(unverified_context, outbox.last_code("alice@example.com"))
    assert unverified_context.identity.get_session(old_token) is None
    new_token = unverified_context.session.access_token
    assert new_token != old_token
    assert unverified_context.identity.get_session(new_token).is_confirmed
    assert unverified_context.state == AuthState.VERIFIED


def test_wrong_code(unverified_context, outbox):
    code = outbox.last_code("alice@example.com")
    wrong = "000000" if code != "000000" else "111111"
    with pytest.raises(BackendRequestFailure) as exc:
        VerifyFlow(unverified_context.identity).verify(unverified_context, wrong)
    assert exc.value.code == "otp_expired"
    assert unverified_context.state == AuthState.UNVERIFIED


@pytest.mark.parametrize("code", ["", "123", "1234567", "12a456"])
def test_code_must_be_six_digits(unverified_context, code):
    with pytest.raises(ValidationFailure):
        VerifyFlow(unverified_context.identity).verify(unverified_context, code)


def test_code_is_single_use(unverified_context, outbox):
    identity = unverified_context.identity
    code = outbox.last_code("alice@example.com")
    identity.verify_otp("alice@example.com", code)
    with pytest.raises(BackendRequestFailure):
        identity.verify_otp("alice@example.com", code)


def test_verify_requires_a_session(context):
    with pytest.raises(AuthRequiredFailure) as exc:
        VerifyFlow(context.identity).verify(context, "123456")
    assert exc.value.redirect_to == "login"


def test_expired_code(database_url):
    outbox = Outbox()
    backend = BackendClient(database_url, code_sender=outbox, otp_ttl=timedelta(seconds=-1))
    SignupFlow(backend.auth).submit(make_form())
    with pytest.raises(BackendRequestFailure):
        backend.auth.verify_otp("alice@example.com", outbox.last_code("alice@example.com"))


def test_resend_issues_a_new_code(unverified_context, outbox):
    first = outbox.last_code("alice@example.com")
    VerifyFlow(unverified_context.identity).resend(unverified_context)
    assert len(outbox.messages) == 2
    second = outbox.last_code("alice@example.com")
    VerifyFlow(unverified_context.identity).verify(unverified_context, second)
    assert unverified_context.state == AuthState.VERIFIED
    assert first is not None


def test_resend_is_rate_limited(database_url):
    outbox = Outbox()
    backend = BackendClient(database_url, code_sender=outbox, resend_interval=timedelta(seconds=60))
    SignupFlow(backend.auth).submit(make_form())
    with pytest.raises(BackendRequestFailure) as exc:
        backend.auth.resend_otp("alice@example.com")
    assert exc.value.code == "over_email_send_rate_limit"
    assert describe_failure(exc.value) == RATE_LIMIT_MESSAGE
    assert len(outbox.messages) == 1


def test_resend_for_unknown_address_is_silent(backend, outbox):
    backend.auth.resend_otp("ghost@example.com")
    assert outbox.messages == []


# ----- auth state notifications -----

def test_auth_events_are_published(backend, signed_up, outbox):
    events = []
    sub = backend.auth.on_auth_state_change(lambda e: events.append(e.kind))
    session = backend.auth.sign_in_with_password(signed_up.email, PASSWORD)
    backend.auth.verify_otp(signed_up.email, outbox.last_code(signed_up.email))
    backend.auth.sign_out(session.access_token)
    sub.unsubscribe()
    backend.auth.sign_in_with_password(signed_up.email, PASSWORD)
    assert events == [SIGNED_IN, USER_UPDATED, SIGNED_OUT]
