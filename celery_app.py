"""Celery application configuration for IdeaSpark background tasks."""

from celery import Celery

from src.config import settings

celery = Celery("ideaspark")

celery.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # --- Queue routing per job type ---
    task_routes={
        "src.modules.notifications.*": {"queue": "notifications"},
    },
    # --- Reliability settings (at-least-once) ---
    task_default_retry_delay=60,
    task_max_retries=3,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=5,
    result_expires=86400,  # 24 hours
    # --- Broker transport options (Redis reliability) ---
    broker_transport_options={
        "max_retries": 10,
        "interval_start": 0.2,
        "interval_step": 0.5,
        "interval_max": 5.0,
        "retry_on_timeout": True,
        "visibility_timeout": 3600,
        "priority_steps": list(range(10)),
        "queue_order_strategy": "priority",
    },
)

celery.autodiscover_tasks([
    "src.modules.notifications",
])
