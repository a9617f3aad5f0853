"""Signup, email verification and login.

Each flow validates locally, calls the identity service, and updates the
caller's SessionContext. Pages decide how to show the outcome.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, replace
from datetime import date
from typing import Dict, Optional

from taskboard.backend.identity import IdentityService
from taskboard.errors import BackendRequestFailure, DuplicateResourceFailure, TaskboardError, ValidationFailure
from taskboard.session import TASKS, VERIFY, AuthState, SessionContext

logger = logging.getLogger(__name__)

GENDERS = ("male", "female", "other")

USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,30}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CONTACT_RE = re.compile(r"^\+?[0-9]{10,15}$")

RATE_LIMIT_MESSAGE = "For security purposes, please wait a minute before trying again."
DUPLICATE_EMAIL_MESSAGE = "This email is already registered"


@dataclass(frozen=True)
class SignupForm:
    username: str = ""
    email: str = ""
    password: str = ""
    full_name: str = ""
    contact_number: str = ""
    birthdate: str = ""
    address: str = ""
    gender: str = "other"
    position: str = ""
    security_code: str = ""


def _check_birthdate(raw: str, today: date) -> Optional[str]:
    if not raw:
        return "Birthdate is required"
    try:
        born = date.fromisoformat(raw)
    except ValueError:
        return "Birthdate must be a date (YYYY-MM-DD)"
    if born > today:
        return "Birthdate cannot be in the future"
    return None


def validate_signup(
    form: SignupForm,
    *,
    security_code: Optional[str] = None,
    today: Optional[date] = None,
) -> SignupForm:
    """Return a normalised copy of ``form`` or raise ValidationFailure."""
    today = today or date.today()
    form = replace(
        form,
        username=form.username.strip(),
        email=form.email.strip().lower(),
        full_name=form.full_name.strip(),
        contact_number=re.sub(r"[\s()-]", "", form.contact_number or ""),
        birthdate=(form.birthdate or "").strip(),
        address=(form.address or "").strip(),
        gender=(form.gender or "").strip().lower(),
        position=form.position.strip(),
        security_code=(form.security_code or "").strip(),
    )
    errors: Dict[str, str] = {}

    if not USERNAME_RE.match(form.username):
        errors["username"] = "Username must be 3-30 letters, digits, '.', '_' or '-'"
    if len(form.email) > 320 or not EMAIL_RE.match(form.email):
        errors["email"] = "Enter a valid email address"
    if len(form.password) < 8:
        errors["password"] = "Password must be at least 8 characters"
    elif not (re.search(r"[A-Za-z]", form.password) and re.search(r"[0-9]", form.password)):
        errors["password"] = "Password must contain letters and numbers"
    if not 2 <= len(form.full_name) <= 128:
        errors["full_name"] = "Full name must be 2-128 characters"
    if not CONTACT_RE.match(form.contact_number):
        errors["contact_number"] = "Contact number must be 10-15 digits, optionally starting with +"
    birth_error = _check_birthdate(form.birthdate, today)
    if birth_error:
        errors["birthdate"] = birth_error
    if len(form.address) > 500:
        errors["address"] = "Address must be at most 500 characters"
    if form.gender not in GENDERS:
        errors["gender"] = "Select a gender"
    if not form.position or len(form.position) > 128:
        errors["position"] = "Position is required"
    if security_code and form.security_code != security_code:
        errors["security_code"] = "Invalid security code"

    if errors:
        raise ValidationFailure(errors)
    return form


def describe_failure(exc: TaskboardError) -> str:
    """User-facing text for a failure raised by any flow."""
    if isinstance(exc, DuplicateResourceFailure):
        return DUPLICATE_EMAIL_MESSAGE
    if isinstance(exc, BackendRequestFailure) and exc.code == "over_email_send_rate_limit":
        return RATE_LIMIT_MESSAGE
    return str(exc) or "Something went wrong. Please try again."


class SignupFlow:
    def __init__(self, identity: IdentityService, security_code: Optional[str] = None):
        self.identity = identity
        self.security_code = security_code

    def email_is_registered(self, email: str) -> bool:
        """Advisory pre-check used while the user types; not a guarantee."""
        return self.identity.find_profile_by_email(email) is not None

    def submit(self, form: SignupForm) -> Dict[str, object]:
        cleaned = validate_signup(form, security_code=self.security_code)
        if self.email_is_registered(cleaned.email):
            raise DuplicateResourceFailure("email", cleaned.email)
        profile = {k: v for k, v in asdict(cleaned).items() if k not in ("email", "password", "security_code")}
        # The identity service's unique constraint is what actually prevents
        # two accounts when two submissions race past the pre-check.
        user = self.identity.sign_up(cleaned.email, cleaned.password, profile)
        logger.info("signup completed for %s", cleaned.email)
        return user


class VerifyFlow:
    def __init__(self, identity: IdentityService, code_length: int = 6):
        self.identity = identity
        self.code_length = code_length

    def verify(self, context: SessionContext, code: str) -> str:
        """Exchange a one-time code for a confirmed session; returns the next view."""
        session = context.require(AuthState.UNVERIFIED)
        code = (code or "").strip()
        if len(code) != self.code_length or not code.isdigit():
            raise ValidationFailure({"code": f"Enter the {self.code_length}-digit code from your email"})
        confirmed = self.identity.verify_otp(session.email, code)
        # The confirmed session replaces the unverified one; retire its token.
        try:
            self.identity.sign_out(session.access_token)
        except BackendRequestFailure as e:
            logger.warning("could not revoke the unverified session for %s: %s", session.email, e)
        context.establish(confirmed)
        return TASKS

    def resend(self, context: SessionContext) -> None:
        session = context.require(AuthState.UNVERIFIED)
        self.identity.resend_otp(session.email)


class LoginFlow:
    def __init__(self, identity: IdentityService):
        self.identity = identity

    def sign_in(self, context: SessionContext, email: str, password: str) -> str:
        """Sign in and return where to go: verification or the task view."""
        errors = {}
        if not (email or "").strip():
            errors["email"] = "Email is required"
        if not password:
            errors["password"] = "Password is required"
        if errors:
            raise ValidationFailure(errors)
        session = self.identity.sign_in_with_password(email, password)
        context.establish(session)
        return TASKS if session.is_confirmed else VERIFY

    def sign_out(self, context: SessionContext) -> None:
        context.teardown()
