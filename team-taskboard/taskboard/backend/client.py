from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from taskboard.backend import task_repo
from taskboard.backend.db import backend_errors, init_db
from taskboard.backend.identity import CodeSender, IdentityService
from taskboard.backend.realtime import DELETE, INSERT, UPDATE, ChangeEvent, ChangeFeed, Subscription
from taskboard.config import AppConfig

logger = logging.getLogger(__name__)

TASKS_CHANNEL = "tasks"


class BackendClient:
    """Entry point to the backend: task table, identity and change feed.

    Every committed task write is published on the ``tasks`` channel.
    """

    def __init__(
        self,
        database_url: str,
        *,
        feed: Optional[ChangeFeed] = None,
        code_sender: Optional[CodeSender] = None,
        otp_length: int = 6,
        otp_ttl: timedelta = timedelta(minutes=60),
        resend_interval: timedelta = timedelta(seconds=60),
    ):
        self.database_url = database_url
        self.feed = feed or ChangeFeed()
        self.auth = IdentityService(
            database_url,
            self.feed,
            code_sender=code_sender,
            otp_length=otp_length,
            otp_ttl=otp_ttl,
            resend_interval=resend_interval,
        )
        with backend_errors("initialise the database"):
            init_db(database_url)

    @classmethod
    def from_config(cls, config: AppConfig, code_sender: Optional[CodeSender] = None) -> "BackendClient":
        return cls(
            config.database_url,
            code_sender=code_sender,
            otp_length=config.otp_length,
            otp_ttl=timedelta(minutes=config.otp_ttl_minutes),
            resend_interval=timedelta(seconds=config.otp_resend_seconds),
        )

    def _publish(self, kind: str, record_id: Optional[str]) -> None:
        self.feed.publish(ChangeEvent(channel=TASKS_CHANNEL, kind=kind, record_id=record_id))

    # ----- tasks -----

    def fetch_tasks(self) -> List[Dict[str, Any]]:
        with backend_errors("load tasks"):
            return task_repo.list_tasks(self.database_url)

    def insert_task(self, values: Dict[str, Any]) -> Dict[str, Any]:
        with backend_errors("create the task"):
            row = task_repo.insert_task(self.database_url, values)
        logger.info("task %s created by %s", row["id"], row["created_by"])
        self._publish(INSERT, row["id"])
        return row

    def update_task(self, task_id: str, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with backend_errors("update the task"):
            row = task_repo.update_task(self.database_url, task_id, values)
        if row is not None:
            logger.info("task %s updated: %s", task_id, ", ".join(sorted(values)))
            self._publish(UPDATE, task_id)
        return row

    def delete_task(self, task_id: str) -> bool:
        with backend_errors("delete the task"):
            deleted = task_repo.delete_task(self.database_url, task_id)
        if deleted:
            logger.info("task %s deleted", task_id)
            self._publish(DELETE, task_id)
        return deleted

    # ----- realtime -----

    def subscribe(self, channel: str, callback: Callable[[ChangeEvent], None]) -> Subscription:
        return self.feed.subscribe(channel, callback)
