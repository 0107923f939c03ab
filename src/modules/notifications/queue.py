"""Background job queue for ancillary notifications (email and similar).

Delivery guarantees come from the Celery configuration in ``celery_app``:
late acks (at-least-once), bounded retries with exponential backoff, and a
retention list of failed jobs kept for operator inspection.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

import redis
from celery import Celery

from src.config import settings
from src.modules.notifications.constants import (
    DEFAULT_JOB_PRIORITY,
    FAILED_JOBS_KEY,
    JOB_SEND_EMAIL,
    NOTIFICATIONS_QUEUE,
)

logger = logging.getLogger(__name__)


class JobQueue:
    """Enqueues named jobs on the notifications queue."""

    def __init__(self, celery_app: Celery) -> None:
        self._celery = celery_app

    def enqueue(
        self,
        job_kind: str,
        payload: dict[str, Any],
        priority: int = DEFAULT_JOB_PRIORITY,
    ) -> str:
        """Submit a job and return its id."""
        result = self._celery.send_task(
            job_kind,
            kwargs={"payload": payload},
            queue=NOTIFICATIONS_QUEUE,
            priority=priority,
        )
        logger.debug("Job %s (%s) added to queue %s", result.id, job_kind, NOTIFICATIONS_QUEUE)
        return result.id

    def enqueue_email(
        self,
        to: str,
        subject: str,
        html: str,
        priority: int = DEFAULT_JOB_PRIORITY,
    ) -> str:
        return self.enqueue(JOB_SEND_EMAIL, {"to": to, "subject": subject, "html": html}, priority)


class FailedJobLog:
    """Bounded, expiring Redis list of jobs that exhausted their retries."""

    def __init__(
        self,
        redis_client: redis.Redis,
        retention_seconds: int = settings.failed_job_retention_seconds,
        max_entries: int = settings.failed_job_retention_count,
    ) -> None:
        self._redis = redis_client
        self._key = f"{settings.cache_key_prefix}{FAILED_JOBS_KEY}"
        self._retention_seconds = retention_seconds
        self._max_entries = max_entries

    @classmethod
    def from_url(cls, url: str | None = None) -> FailedJobLog:
        return cls(redis.Redis.from_url(url or settings.redis_url, decode_responses=True))

    def record(self, job_id: str, job_kind: str, payload: Any, error: str) -> None:
        entry = json.dumps(
            {
                "job_id": job_id,
                "kind": job_kind,
                "payload": payload,
                "error": error,
                "failed_at": datetime.now(UTC).isoformat(),
            },
            default=str,
        )
        pipe = self._redis.pipeline()
        pipe.lpush(self._key, entry)
        pipe.ltrim(self._key, 0, self._max_entries - 1)
        pipe.expire(self._key, self._retention_seconds)
        pipe.execute()

    def list_failed_jobs(self, limit: int = 50) -> list[dict]:
        """Most recent failures first."""
        return [json.loads(raw) for raw in self._redis.lrange(self._key, 0, limit - 1)]
