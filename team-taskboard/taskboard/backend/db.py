"""Backend database engine and session management."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from taskboard.backend.models import Base
from taskboard.errors import BackendRequestFailure

logger = logging.getLogger(__name__)


# Engines are cached per URL so several configs (and tests) can coexist.
_ENGINES: Dict[str, Engine] = {}
_SESSIONMAKERS: Dict[str, sessionmaker] = {}
_LOCK = Lock()


def get_engine(database_url: str) -> Engine:
    with _LOCK:
        engine = _ENGINES.get(database_url)
        if engine is not None:
            return engine

        # Streamlit runs each browser session on its own script thread.
        connect_args = {}
        if database_url.startswith("sqlite:"):
            connect_args = {"check_same_thread": False}

        engine = create_engine(
            database_url,
            future=True,
            echo=False,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        _ENGINES[database_url] = engine
        _SESSIONMAKERS[database_url] = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False, future=True
        )
        return engine


def get_sessionmaker(database_url: str) -> sessionmaker:
    if database_url not in _SESSIONMAKERS:
        get_engine(database_url)
    return _SESSIONMAKERS[database_url]


def init_db(database_url: str) -> None:
    """Create all backend tables. Safe to call repeatedly."""
    Base.metadata.create_all(get_engine(database_url))


@contextmanager
def backend_errors(action: str) -> Iterator[None]:
    """Translate database errors raised inside the block into BackendRequestFailure."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("backend request failed during %s: %s", action, e)
        raise BackendRequestFailure(f"Backend request failed while trying to {action}") from e
