import gc

import pytest

from taskboard.errors import AuthRequiredFailure
from taskboard.session import (
    LOGIN,
    MARKDOWN_EDITOR,
    SIGNUP,
    TASKS,
    VERIFY,
    AuthState,
    SessionContext,
    ViewResources,
    redirect_for,
)

from .factories import PASSWORD


@pytest.mark.parametrize(
    "state, view, expected",
    [
        (AuthState.UNAUTHENTICATED, TASKS, LOGIN),
        (AuthState.UNVERIFIED, TASKS, VERIFY),
        (AuthState.VERIFIED, TASKS, None),
        (AuthState.UNAUTHENTICATED, VERIFY, LOGIN),
        (AuthState.UNVERIFIED, VERIFY, None),
        (AuthState.VERIFIED, VERIFY, TASKS),
        (AuthState.UNAUTHENTICATED, LOGIN, None),
        (AuthState.UNVERIFIED, LOGIN, VERIFY),
        (AuthState.VERIFIED, LOGIN, TASKS),
        (AuthState.UNAUTHENTICATED, SIGNUP, None),
        (AuthState.VERIFIED, SIGNUP, TASKS),
        (AuthState.UNAUTHENTICATED, MARKDOWN_EDITOR, None),
    ],
)
def test_redirect_table(state, view, expected):
    assert redirect_for(state, view) == expected


def test_new_context_is_unauthenticated(context):
    assert context.session is None
    assert context.state == AuthState.UNAUTHENTICATED


def test_require_without_session(context):
    with pytest.raises(AuthRequiredFailure) as exc:
        context.require()
    assert exc.value.redirect_to == LOGIN


def test_require_verified_from_unverified(unverified_context):
    with pytest.raises(AuthRequiredFailure) as exc:
        unverified_context.require()
    assert exc.value.redirect_to == VERIFY
    assert unverified_context.require(AuthState.UNVERIFIED).email == "alice@example.com"


def test_require_verified(verified_context):
    assert verified_context.require().is_confirmed


def test_teardown_clears_and_stops_listening(backend, verified_context):
    assert backend.feed.subscriber_count("auth") == 1
    verified_context.teardown()
    assert verified_context.state == AuthState.UNAUTHENTICATED
    assert backend.feed.subscriber_count("auth") == 0


def test_teardown_without_session_is_noop(context):
    context.teardown()
    assert context.session is None


def test_sign_out_elsewhere_is_picked_up(backend, verified_context):
    token = verified_context.session.access_token
    backend.auth.sign_out(token)
    assert verified_context.state == AuthState.UNAUTHENTICATED
    assert backend.feed.subscriber_count("auth") == 0


def test_other_session_of_same_user_signing_out_keeps_this_one(backend, verified_context):
    other = backend.auth.sign_in_with_password("alice@example.com", PASSWORD)
    backend.auth.sign_out(other.access_token)
    assert verified_context.state == AuthState.VERIFIED


def test_confirmation_elsewhere_is_picked_up(backend, unverified_context, outbox):
    backend.auth.verify_otp("alice@example.com", outbox.last_code("alice@example.com"))
    assert unverified_context.state == AuthState.VERIFIED


def test_establish_subscribes_once(backend, unverified_context, outbox):
    confirmed = backend.auth.verify_otp("alice@example.com", outbox.last_code("alice@example.com"))
    unverified_context.establish(confirmed)
    assert backend.feed.subscriber_count("auth") == 1


class _Resource:
    def __init__(self):
        self.stopped = False

    def stop(self):
        self.stopped = True


def test_view_resources_released_when_leaving_view():
    views = ViewResources()
    views.enter(TASKS)
    res = views.acquire(TASKS, "realtime", _Resource)
    views.enter(MARKDOWN_EDITOR)
    assert res.stopped
    assert views.held(TASKS) == {}
    assert views.current_view == MARKDOWN_EDITOR


def test_view_resources_kept_on_rerun_of_same_view():
    views = ViewResources()
    views.enter(TASKS)
    first = views.acquire(TASKS, "realtime", _Resource)
    views.enter(TASKS)
    second = views.acquire(TASKS, "realtime", _Resource)
    assert first is second
    assert not first.stopped


def test_view_resources_release_is_idempotent():
    views = ViewResources()
    res = views.acquire(TASKS, "realtime", _Resource)
    views.release(TASKS)
    views.release(TASKS)
    assert res.stopped


def test_abandoned_contexts_stop_listening(backend, signed_up):
    contexts = []
    for _ in range(5):
        ctx = SessionContext(backend.auth)
        ctx.establish(backend.auth.sign_in_with_password(signed_up.email, PASSWORD))
        contexts.append(ctx)
    assert backend.feed.subscriber_count("auth") == 5
    del contexts, ctx
    gc.collect()
    assert backend.feed.subscriber_count("auth") == 0
    # Publishing to a channel whose listeners are gone is harmless.
    backend.auth.sign_in_with_password(signed_up.email, PASSWORD)
