from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _env_optional_str(*names: str) -> Optional[str]:
    """First non-empty value among ``names``."""
    for name in names:
        value = (os.environ.get(name) or "").strip()
        if value:
            return value
    return None


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return max(minimum, int(raw.strip()))
    except ValueError:
        return default


def _env_log_level(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip().upper()
    level = logging.getLevelName(raw) if raw else default
    return level if isinstance(level, int) else default


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration for the taskboard app.

    DB selection:
    - TASKBOARD_DATABASE_URL: app-specific DB URL (preferred)
    - PLATFORM_DATABASE_URL / DATABASE_URL: shared DB URL
    - If none is set, defaults to local SQLite at data/taskboard.db

    Auth:
    - SIGNUP_SECURITY_CODE: when set, signup requires this code
    - OTP_LENGTH (default: 6), OTP_TTL_MINUTES (default: 60)
    - OTP_RESEND_SECONDS: minimum gap between codes for one address (default: 60)

    UI:
    - TASKS_REFRESH_SECONDS: how often the task list checks for remote changes (default: 5)

    Logging:
    - LOG_DIR (default: .local/taskboard), LOG_LEVEL (default: INFO)
    """

    database_url: str
    signup_security_code: Optional[str]
    otp_length: int
    otp_ttl_minutes: int
    otp_resend_seconds: int
    tasks_refresh_seconds: int
    log_dir: str
    log_level: int

    @classmethod
    def from_env(cls) -> "AppConfig":
        db_url = _env_optional_str("TASKBOARD_DATABASE_URL", "PLATFORM_DATABASE_URL", "DATABASE_URL")
        if not db_url:
            data_dir = _repo_root() / "data"
            data_dir.mkdir(parents=True, exist_ok=True)
            db_url = f"sqlite:///{(data_dir / 'taskboard.db').as_posix()}"

        return cls(
            database_url=db_url,
            signup_security_code=_env_optional_str("SIGNUP_SECURITY_CODE"),
            otp_length=_env_int("OTP_LENGTH", 6, minimum=4),
            otp_ttl_minutes=_env_int("OTP_TTL_MINUTES", 60, minimum=1),
            otp_resend_seconds=_env_int("OTP_RESEND_SECONDS", 60),
            tasks_refresh_seconds=_env_int("TASKS_REFRESH_SECONDS", 5, minimum=1),
            log_dir=_env_optional_str("LOG_DIR") or ".local/taskboard",
            log_level=_env_log_level("LOG_LEVEL", logging.INFO),
        )


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the app configuration (cached)."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    global _config
    _config = None
