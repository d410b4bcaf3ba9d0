# ===== app/tasks/appointment_tasks.py =====
"""
Delivery of appointment outbox events.

The booking transaction only writes AppointmentEvent rows; these tasks send
the notifications afterwards, so a failing SMTP server never affects a booking.
"""
from datetime import timedelta
from typing import Iterable
from uuid import UUID
import logging

from app.config.celery_config import celery_app
from app.config.database import SessionLocal
from app.config.settings import get_settings
from app.repositories import EventRepository
from app.services.email.email_service import EmailService
from app.utils.time_utils import local_now

logger = logging.getLogger(__name__)
settings = get_settings()


def deliver_event(db, event_id: UUID) -> str:
    """
    Attempt one delivery of an outbox event and record the outcome.

    Returns the event status after the attempt.

    Raises:
        Exception: the delivery error when the event should be retried
    """
    event = EventRepository.get(db, event_id)
    if not event:
        logger.warning(f"Appointment event {event_id} not found")
        return "missing"

    if event.status != "pending":
        return event.status

    event.attempts += 1
    try:
        EmailService.send_appointment_email(event.event_type, event.payload)
    except Exception as exc:
        event.last_error = str(exc)
        if event.attempts >= settings.EVENT_MAX_ATTEMPTS:
            event.status = "failed"
        db.commit()
        logger.error(f"Delivery of {event.event_type} event {event_id} failed (attempt {event.attempts}): {exc}")
        if event.status == "pending":
            raise
        return event.status

    event.status = "delivered"
    event.delivered_at = local_now()
    event.last_error = None
    db.commit()
    logger.info(f"Delivered {event.event_type} event {event_id}")
    return event.status


@celery_app.task(bind=True, max_retries=3)
def deliver_appointment_event(self, event_id: str):
    """
    Send the notification for one appointment event

    Args:
        event_id: AppointmentEvent id
    """
    db = SessionLocal()
    try:
        status = deliver_event(db, UUID(event_id))
        return {"status": status, "event_id": event_id}
    except Exception as exc:
        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
    finally:
        db.close()


@celery_app.task
def redeliver_pending_events():
    """Re-enqueue events whose first dispatch was lost or exhausted its task retries"""
    db = SessionLocal()
    try:
        # Leave recent events to the retries already scheduled for them
        cutoff = local_now() - timedelta(seconds=settings.EVENT_REDELIVERY_INTERVAL_SECONDS)
        events = EventRepository.pending(db, max_attempts=settings.EVENT_MAX_ATTEMPTS, created_before=cutoff)
        event_ids = [event.id for event in events]
    finally:
        db.close()

    enqueue_event_delivery(event_ids)
    return {"requeued": len(event_ids)}


def enqueue_event_delivery(event_ids: Iterable[UUID]) -> None:
    """
    Hand events to the worker.

    Called after the booking transaction commits. A broker failure is logged
    and left to redeliver_pending_events; it never reaches the caller.
    """
    for event_id in event_ids:
        try:
            deliver_appointment_event.delay(str(event_id))
        except Exception as e:
            logger.error(f"Failed to enqueue appointment event {event_id}: {e}")
