"""Backend database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import declarative_base


Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.utcnow()


def _generate_id() -> str:
    return str(uuid.uuid4())


def _iso(ts) -> Any:
    return ts.isoformat() + "Z" if ts else None


class TaskRecord(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=_generate_id)
    title = Column(String(512), nullable=False)
    description = Column(Text, default="", nullable=False)
    created_by = Column(String(128), nullable=False)
    assigned_to = Column(String(128), nullable=False, index=True)
    priority = Column(String(16), default="medium", nullable=False)
    status = Column(String(32), default="pending", nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description or "",
            "created_by": self.created_by,
            "assigned_to": self.assigned_to,
            "priority": self.priority,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class UserAccount(Base):
    """Identity record: credentials and confirmation state."""

    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True, default=_generate_id)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(128), nullable=False)
    password_salt = Column(String(64), nullable=False)
    email_confirmed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    last_sign_in_at = Column(DateTime, nullable=True)


class Profile(Base):
    """Signup metadata, one row per account."""

    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    username = Column(String(64), nullable=False)
    full_name = Column(String(128), nullable=False, default="")
    contact_number = Column(String(32), nullable=True)
    birthdate = Column(String(10), nullable=True)
    address = Column(Text, nullable=True)
    gender = Column(String(16), nullable=True)
    position = Column(String(128), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "full_name": self.full_name,
            "contact_number": self.contact_number,
            "birthdate": self.birthdate,
            "address": self.address,
            "gender": self.gender,
            "position": self.position,
            "created_at": _iso(self.created_at),
        }


class OneTimeCode(Base):
    __tablename__ = "auth_one_time_codes"

    id = Column(String(36), primary_key=True, default=_generate_id)
    user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)
    sent_at = Column(DateTime, default=_utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    consumed = Column(Boolean, default=False, nullable=False)


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
