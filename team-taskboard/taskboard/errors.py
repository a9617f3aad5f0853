"""Error taxonomy shared by the backend layer, services and pages.

Pages catch these at the call site and turn them into inline messages,
toasts or redirects; nothing here is expected to reach Streamlit uncaught.
"""

from __future__ import annotations

from typing import Dict, Optional


class TaskboardError(Exception):
    """Base class for all taskboard failures."""


class ValidationFailure(TaskboardError):
    """Malformed local input. Carries per-field messages for inline display."""

    def __init__(self, field_errors: Dict[str, str], message: Optional[str] = None):
        self.field_errors = dict(field_errors)
        super().__init__(message or "; ".join(f"{k}: {v}" for k, v in self.field_errors.items()))


class DuplicateResourceFailure(TaskboardError):
    """A unique resource (e.g. an email address) is already registered."""

    def __init__(self, resource: str, value: str):
        self.resource = resource
        self.value = value
        super().__init__(f"This {resource} is already registered")


class BackendRequestFailure(TaskboardError):
    """The backend could not serve a request.

    ``code`` is a short machine-readable reason when the backend supplies one
    (``invalid_credentials``, ``otp_expired``, ``over_email_send_rate_limit``).
    """

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


class TaskAccessFailure(BackendRequestFailure):
    """Raised by the task access service for any failed task read or write."""


class AuthRequiredFailure(TaskboardError):
    """No usable session. Pages redirect instead of showing an error."""

    def __init__(self, message: str = "Sign in required", redirect_to: str = "login"):
        self.redirect_to = redirect_to
        super().__init__(message)
