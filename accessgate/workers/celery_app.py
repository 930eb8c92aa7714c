"""Celery application configuration."""

from celery import Celery

from accessgate.config import settings

celery_app = Celery(
    "accessgate",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["accessgate.workers.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Reliability settings
    task_acks_late=True,  # Ack after task completion
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    # Result settings
    result_expires=86400,  # 24 hours

    # Retry settings
    task_default_retry_delay=60,  # 1 minute
    task_max_retries=3,

    # Expired invitations and link tokens are swept periodically
    beat_schedule={
        "purge-expired-invitations": {
            "task": "accessgate.workers.tasks.purge_expired_invitations",
            "schedule": float(settings.PURGE_INTERVAL_SECONDS),
        },
    },
)
