"""Celery tasks for ancillary notifications."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from celery.signals import task_failure

from celery_app import celery
from src.config import settings
from src.modules.notifications.constants import (
    EMAIL_MAX_RETRIES,
    EMAIL_RETRY_BACKOFF_MAX,
    JOB_SEND_EMAIL,
)
from src.modules.notifications.queue import FailedJobLog

logger = logging.getLogger(__name__)


def _deliver_email(to: str, subject: str, html: str) -> None:
    message = EmailMessage()
    message["From"] = settings.mail_from
    message["To"] = to
    message["Subject"] = subject
    message.set_content("This message requires an HTML-capable mail client.")
    message.add_alternative(html, subtype="html")

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        if settings.smtp_username:
            smtp.login(settings.smtp_username, settings.smtp_password)
        smtp.send_message(message)


@celery.task(
    bind=True,
    name=JOB_SEND_EMAIL,
    max_retries=EMAIL_MAX_RETRIES,
    default_retry_delay=1,
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_backoff=True,
    retry_backoff_max=EMAIL_RETRY_BACKOFF_MAX,
    acks_late=True,
)
def send_email(self, payload: dict) -> dict:
    """Send one transactional email. Retried with exponential backoff."""
    to = payload["to"]
    logger.info(
        "Processing email job %s to %s (attempt %d)", self.request.id, to, self.request.retries + 1
    )
    _deliver_email(to, payload["subject"], payload["html"])
    logger.info("Email sent successfully for job %s", self.request.id)
    return {"to": to, "status": "sent"}


@task_failure.connect
def record_failed_job(sender=None, task_id=None, exception=None, kwargs=None, **extra) -> None:
    """Keep jobs that exhausted their retries for operator inspection."""
    job_kind = getattr(sender, "name", "unknown")
    logger.error("Job %s (%s) failed permanently: %s", task_id, job_kind, exception)
    try:
        FailedJobLog.from_url().record(
            job_id=task_id,
            job_kind=job_kind,
            payload=(kwargs or {}).get("payload"),
            error=repr(exception),
        )
    except Exception:
        logger.exception("Could not record failed job %s", task_id)
