from __future__ import annotations

from dataclasses import replace

from taskboard.auth_flow import SignupForm
from taskboard.models import Task

PASSWORD = "s3cretpass"


def make_form(**overrides) -> SignupForm:
    base = SignupForm(
        username="alice_w",
        email="alice@example.com",
        password=PASSWORD,
        full_name="Alice Walker",
        contact_number="+15551234567",
        birthdate="1990-04-12",
        address="1 Main St",
        gender="female",
        position="Engineer",
    )
    return replace(base, **overrides)


def make_task(**overrides) -> Task:
    base = Task(
        id="t1",
        title="Fix bug",
        created_by="alice",
        assigned_to="bob",
        priority="high",
        status="pending",
    )
    return replace(base, **overrides)
