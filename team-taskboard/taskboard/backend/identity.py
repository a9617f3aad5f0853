"""Identity service: accounts, one-time email codes and sessions.

Accounts start unconfirmed. Signing up sends a numeric one-time code to the
address; exchanging it through :meth:`IdentityService.verify_otp` sets
``email_confirmed_at`` and yields a confirmed session. Unconfirmed accounts can
still sign in, and the UI sends them to the verification page.

Auth state changes are published on the ``auth`` channel of the change feed
with the event name as the kind (``SIGNED_IN``, ``SIGNED_OUT``,
``USER_UPDATED``) and the user id as the record id.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from taskboard.backend.db import backend_errors, get_sessionmaker
from taskboard.backend.models import AuthSession, OneTimeCode, Profile, UserAccount
from taskboard.backend.realtime import ChangeEvent, ChangeFeed, Subscription
from taskboard.errors import BackendRequestFailure, DuplicateResourceFailure
from taskboard.models import Session

logger = logging.getLogger(__name__)

AUTH_CHANNEL = "auth"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
USER_UPDATED = "USER_UPDATED"

PBKDF2_ITERATIONS = 120_000

PROFILE_FIELDS = ("username", "full_name", "contact_number", "birthdate", "address", "gender", "position")

CodeSender = Callable[[str, str], None]


def normalise_email(email: str) -> str:
    return (email or "").strip().lower()


def _hash_password(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS).hex()


def _hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


@dataclass
class Outbox:
    """Keeps delivered codes in memory; used as the code sender in dev and tests."""

    messages: List[Dict[str, str]] = field(default_factory=list)
    _lock: Lock = field(default_factory=Lock, repr=False)

    def __call__(self, email: str, code: str) -> None:
        with self._lock:
            self.messages.append({"email": email, "code": code})
        logger.info("one-time code for %s: %s", email, code)

    def last_code(self, email: str) -> Optional[str]:
        email = normalise_email(email)
        with self._lock:
            for m in reversed(self.messages):
                if m["email"] == email:
                    return m["code"]
        return None


class IdentityService:
    def __init__(
        self,
        database_url: str,
        feed: ChangeFeed,
        *,
        code_sender: Optional[CodeSender] = None,
        otp_length: int = 6,
        otp_ttl: timedelta = timedelta(minutes=60),
        resend_interval: timedelta = timedelta(seconds=60),
    ):
        self.database_url = database_url
        self.feed = feed
        self.code_sender = code_sender or Outbox()
        self.otp_length = int(otp_length)
        self.otp_ttl = otp_ttl
        self.resend_interval = resend_interval

    # ----- helpers -----

    def _sm(self):
        return get_sessionmaker(self.database_url)

    def _emit(self, kind: str, user_id: Optional[str]) -> None:
        self.feed.publish(ChangeEvent(channel=AUTH_CHANNEL, kind=kind, record_id=user_id))

    def _new_code(self) -> str:
        return "".join(secrets.choice("0123456789") for _ in range(self.otp_length))

    def _issue_code(self, s, user: UserAccount, now: datetime) -> str:
        last = s.execute(
            select(OneTimeCode)
            .where(OneTimeCode.user_id == user.id)
            .order_by(OneTimeCode.sent_at.desc())
            .limit(1)
        ).scalars().first()
        if last is not None and now - last.sent_at < self.resend_interval:
            wait = int((self.resend_interval - (now - last.sent_at)).total_seconds()) + 1
            raise BackendRequestFailure(
                f"For security purposes, you can only request this after {wait} seconds.",
                code="over_email_send_rate_limit",
            )
        code = self._new_code()
        s.add(
            OneTimeCode(
                user_id=user.id,
                code_hash=_hash_code(code),
                sent_at=now,
                expires_at=now + self.otp_ttl,
            )
        )
        return code

    def _open_session(self, s, user: UserAccount, username: str) -> Session:
        token = secrets.token_urlsafe(32)
        now = datetime.utcnow()
        s.add(AuthSession(token=token, user_id=user.id, created_at=now))
        user.last_sign_in_at = now
        return Session(
            access_token=token,
            user_id=user.id,
            email=user.email,
            username=username,
            email_confirmed_at=user.email_confirmed_at,
            created_at=now,
        )

    def _username(self, s, user_id: str) -> str:
        p = s.get(Profile, user_id)
        return p.username if p else ""

    # ----- public API -----

    def find_profile_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with backend_errors("look up the email address"):
            with self._sm()() as s:
                p = s.execute(select(Profile).where(Profile.email == normalise_email(email))).scalars().first()
                return p.to_dict() if p else None

    def sign_up(self, email: str, password: str, profile: Dict[str, Any]) -> Dict[str, Any]:
        """Create an unconfirmed account plus its profile and send a code.

        The unique constraint on the email columns decides duplicates; a
        violation raises DuplicateResourceFailure and nothing is written.
        """
        email = normalise_email(email)
        now = datetime.utcnow()
        salt = secrets.token_hex(16)
        with backend_errors("create the account"):
            with self._sm()() as s:
                user = UserAccount(
                    email=email,
                    password_salt=salt,
                    password_hash=_hash_password(password, salt),
                    created_at=now,
                )
                s.add(user)
                try:
                    s.flush()
                    s.add(Profile(id=user.id, email=email, **{k: profile.get(k) for k in PROFILE_FIELDS}))
                    s.flush()
                except IntegrityError:
                    s.rollback()
                    logger.info("signup rejected, email already registered: %s", email)
                    raise DuplicateResourceFailure("email", email)
                code = self._issue_code(s, user, now)
                s.commit()
                user_id = user.id
        logger.info("account created for %s", email)
        self.code_sender(email, code)
        return {"id": user_id, "email": email, "email_confirmed_at": None}

    def resend_otp(self, email: str) -> None:
        email = normalise_email(email)
        with backend_errors("send a new code"):
            with self._sm()() as s:
                user = s.execute(select(UserAccount).where(UserAccount.email == email)).scalars().first()
                if user is None:
                    # Same response as for a real address.
                    logger.info("code requested for unknown address %s", email)
                    return
                code = self._issue_code(s, user, datetime.utcnow())
                s.commit()
        self.code_sender(email, code)

    def verify_otp(self, email: str, code: str) -> Session:
        email = normalise_email(email)
        now = datetime.utcnow()
        with backend_errors("verify the code"):
            with self._sm()() as s:
                user = s.execute(select(UserAccount).where(UserAccount.email == email)).scalars().first()
                candidates = []
                if user is not None:
                    candidates = s.execute(
                        select(OneTimeCode)
                        .where(OneTimeCode.user_id == user.id)
                        .where(OneTimeCode.consumed.is_(False))
                        .where(OneTimeCode.expires_at > now)
                    ).scalars().all()
                wanted = _hash_code(code or "")
                match = next((c for c in candidates if hmac.compare_digest(c.code_hash, wanted)), None)
                if match is None:
                    raise BackendRequestFailure("Token has expired or is invalid", code="otp_expired")
                match.consumed = True
                if user.email_confirmed_at is None:
                    user.email_confirmed_at = now
                session = self._open_session(s, user, self._username(s, user.id))
                s.commit()
        logger.info("email confirmed for %s", email)
        self._emit(USER_UPDATED, session.user_id)
        return session

    def sign_in_with_password(self, email: str, password: str) -> Session:
        email = normalise_email(email)
        with backend_errors("sign in"):
            with self._sm()() as s:
                user = s.execute(select(UserAccount).where(UserAccount.email == email)).scalars().first()
                if user is None or not hmac.compare_digest(
                    user.password_hash, _hash_password(password or "", user.password_salt)
                ):
                    logger.info("failed sign-in for %s", email)
                    raise BackendRequestFailure("Invalid login credentials", code="invalid_credentials")
                session = self._open_session(s, user, self._username(s, user.id))
                s.commit()
        logger.info("signed in %s (confirmed=%s)", email, session.is_confirmed)
        self._emit(SIGNED_IN, session.user_id)
        return session

    def get_session(self, access_token: Optional[str]) -> Optional[Session]:
        """Return the live session for a token, or None if unknown or revoked."""
        if not access_token:
            return None
        with backend_errors("load the session"):
            with self._sm()() as s:
                row = s.get(AuthSession, access_token)
                if row is None or row.revoked_at is not None:
                    return None
                user = s.get(UserAccount, row.user_id)
                if user is None:
                    return None
                return Session(
                    access_token=row.token,
                    user_id=user.id,
                    email=user.email,
                    username=self._username(s, user.id),
                    email_confirmed_at=user.email_confirmed_at,
                    created_at=row.created_at,
                )

    def sign_out(self, access_token: Optional[str]) -> None:
        if not access_token:
            return
        user_id = None
        with backend_errors("sign out"):
            with self._sm()() as s:
                row = s.get(AuthSession, access_token)
                if row is not None and row.revoked_at is None:
                    row.revoked_at = datetime.utcnow()
                    user_id = row.user_id
                    s.commit()
        if user_id:
            self._emit(SIGNED_OUT, user_id)

    def on_auth_state_change(self, callback: Callable[[ChangeEvent], None]) -> Subscription:
        return self.feed.subscribe(AUTH_CHANNEL, callback)

    def account_count(self, email: str) -> int:
        with backend_errors("count accounts"):
            with self._sm()() as s:
                return len(
                    s.execute(select(UserAccount.id).where(UserAccount.email == normalise_email(email))).all()
                )
