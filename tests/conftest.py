from __future__ import annotations

from datetime import timedelta

import pytest

from taskboard.auth_flow import LoginFlow, SignupFlow, VerifyFlow
from taskboard.backend import BackendClient, Outbox
from taskboard.session import SessionContext
from taskboard.task_service import TaskAccessService

from .factories import PASSWORD, make_form


@pytest.fixture()
def outbox() -> Outbox:
    return Outbox()


@pytest.fixture()
def database_url(tmp_path) -> str:
    return f"sqlite:///{(tmp_path / 'taskboard.db').as_posix()}"


@pytest.fixture()
def backend(database_url, outbox) -> BackendClient:
    return BackendClient(database_url, code_sender=outbox, resend_interval=timedelta(0))


@pytest.fixture()
def context(backend) -> SessionContext:
    return SessionContext(backend.auth)


@pytest.fixture()
def signed_up(backend):
    """An account that exists but has not been verified yet."""
    SignupFlow(backend.auth).submit(make_form())
    return make_form()


@pytest.fixture()
def unverified_context(context, signed_up) -> SessionContext:
    LoginFlow(context.identity).sign_in(context, signed_up.email, PASSWORD)
    return context


@pytest.fixture()
def verified_context(unverified_context, outbox) -> SessionContext:
    code = outbox.last_code("alice@example.com")
    VerifyFlow(unverified_context.identity).verify(unverified_context, code)
    return unverified_context


@pytest.fixture()
def service(backend, verified_context) -> TaskAccessService:
    return TaskAccessService(backend, verified_context)
