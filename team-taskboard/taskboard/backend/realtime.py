"""In-process change notifications.

The backend publishes one ``ChangeEvent`` per committed write. Subscribers
register a callback per channel and get back a ``Subscription`` handle to
stop receiving events.

Bound-method callbacks are held weakly: once the object owning the method is
garbage collected (a browser tab closed without signing out) its entry is
dropped. Plain functions and lambdas are held strongly.

Callbacks run synchronously on the publishing thread, which is usually some
other browser session's script thread, so they must be quick and must not
touch Streamlit APIs.
"""

from __future__ import annotations

import inspect
import logging
import uuid
import weakref
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    channel: str
    kind: str
    record_id: Optional[str] = None
    at: datetime = field(default_factory=datetime.utcnow)


Callback = Callable[[ChangeEvent], None]
_Ref = Union[Callback, "weakref.WeakMethod"]


def _hold(callback: Callback) -> _Ref:
    if inspect.ismethod(callback):
        return weakref.WeakMethod(callback)
    return callback


class Subscription:
    """Cancellable handle returned by :meth:`ChangeFeed.subscribe`.

    Usable as a context manager so a view can scope it with ``with``.
    """

    def __init__(self, feed: "ChangeFeed", channel: str, sub_id: str):
        self._feed = feed
        self.channel = channel
        self.id = sub_id
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self.channel, self.id)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class ChangeFeed:
    def __init__(self) -> None:
        self._lock = Lock()
        self._subs: Dict[str, Dict[str, _Ref]] = {}

    def subscribe(self, channel: str, callback: Callback) -> Subscription:
        sub_id = str(uuid.uuid4())
        with self._lock:
            self._subs.setdefault(channel, {})[sub_id] = _hold(callback)
        logger.debug("subscribed %s to %s", sub_id, channel)
        return Subscription(self, channel, sub_id)

    def _remove(self, channel: str, sub_id: str) -> None:
        with self._lock:
            subs = self._subs.get(channel)
            if subs is not None:
                subs.pop(sub_id, None)
                if not subs:
                    del self._subs[channel]
        logger.debug("unsubscribed %s from %s", sub_id, channel)

    def _live(self, channel: str) -> List[Callback]:
        """Resolve the channel's callbacks, pruning those whose owner is gone. Call with the lock held."""
        subs = self._subs.get(channel)
        if not subs:
            return []
        live: List[Callback] = []
        for sub_id, ref in list(subs.items()):
            cb = ref() if isinstance(ref, weakref.WeakMethod) else ref
            if cb is None:
                del subs[sub_id]
                logger.debug("dropped abandoned subscriber %s from %s", sub_id, channel)
                continue
            live.append(cb)
        if not subs:
            del self._subs[channel]
        return live

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._live(channel))

    def publish(self, event: ChangeEvent) -> None:
        # Snapshot under the lock; callbacks may unsubscribe while we iterate.
        with self._lock:
            callbacks = self._live(event.channel)
        for cb in callbacks:
            try:
                cb(event)
            except Exception:
                # One broken listener must not stop delivery to the others.
                logger.exception("change listener failed for %s %s", event.channel, event.kind)
