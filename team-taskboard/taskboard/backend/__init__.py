"""Backend layer: storage, identity and change notification.

Tables live in any SQLAlchemy database (SQLite by default, PostgreSQL when
``DATABASE_URL`` points at one). The UI only talks to :class:`BackendClient`.
"""

from .client import TASKS_CHANNEL, BackendClient
from .identity import AUTH_CHANNEL, SIGNED_IN, SIGNED_OUT, USER_UPDATED, IdentityService, Outbox
from .realtime import ChangeEvent, ChangeFeed, Subscription

__all__ = [
    "AUTH_CHANNEL",
    "TASKS_CHANNEL",
    "SIGNED_IN",
    "SIGNED_OUT",
    "USER_UPDATED",
    "BackendClient",
    "ChangeEvent",
    "ChangeFeed",
    "IdentityService",
    "Outbox",
    "Subscription",
]
