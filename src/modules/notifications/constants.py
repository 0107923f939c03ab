"""Notification channel and job constants."""

# Push events delivered to connected clients
EVENT_MESSAGE = "send_message"
EVENT_TYPING = "typing"

# Connection registry (CacheStore keys)
CONNECTION_KEY = "connection:{user_id}"

# Pub/sub channel a connection's transport subscribes to
CONNECTION_CHANNEL = "{prefix}connection:{handle}"

# Celery job kinds
JOB_SEND_EMAIL = "src.modules.notifications.tasks.send_email"
NOTIFICATIONS_QUEUE = "notifications"

DEFAULT_JOB_PRIORITY = 5

# Failed job retention list (Redis key, prefixed)
FAILED_JOBS_KEY = "jobs:failed"

# Email retry policy
EMAIL_MAX_RETRIES = 3
EMAIL_RETRY_BACKOFF_MAX = 600
