# app/config/celery_config.py
"""Celery configuration and task routing"""
from celery import Celery
from kombu import Queue

from app.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure Celery application"""

    celery_app = Celery(
        "booking_core",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["app.tasks.appointment_tasks"],
    )

    # Configure Celery
    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone=settings.DEFAULT_TIMEZONE,
        enable_utc=True,
        task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,

        # Task routing
        task_routes={
            "app.tasks.appointment_tasks.deliver_appointment_event": {"queue": "appointments"},
            "app.tasks.appointment_tasks.redeliver_pending_events": {"queue": "maintenance"},
        },

        # Queue definitions
        task_queues=(
            Queue("appointments", routing_key="appointments"),
            Queue("maintenance", routing_key="maintenance"),
        ),

        # Periodic sweep for events whose dispatch was lost
        beat_schedule={
            "redeliver-pending-appointment-events": {
                "task": "app.tasks.appointment_tasks.redeliver_pending_events",
                "schedule": float(settings.EVENT_REDELIVERY_INTERVAL_SECONDS),
            },
        },

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        broker_connection_retry_on_startup=True,
    )

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
