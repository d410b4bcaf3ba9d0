"""Outbox delivery"""
import uuid
from datetime import datetime, time
from unittest.mock import patch

import pytest

from app.models import AppointmentEvent
from app.services.appointment.booking_orchestrator import BookingOrchestrator
from app.tasks.appointment_tasks import deliver_event, enqueue_event_delivery
from tests.conftest import NOW, TOMORROW


@pytest.fixture
def event(db, establishment, service, professional):
    BookingOrchestrator.create_appointment(
        db,
        slug=establishment.slug,
        service_id=service.id,
        professional_id=professional.id,
        start_at=datetime.combine(TOMORROW, time(10, 0)),
        customer_name="Maria Silva",
        customer_phone="11999990000",
        customer_email="maria@example.com",
        now=NOW,
    )
    return db.query(AppointmentEvent).one()


def test_successful_delivery(db, event):
    with patch("app.tasks.appointment_tasks.EmailService.send_appointment_email", return_value=True) as send:
        assert deliver_event(db, event.id) == "delivered"

    send.assert_called_once_with("appointment.created", event.payload)
    db.refresh(event)
    assert event.attempts == 1
    assert event.delivered_at is not None


def test_delivered_event_is_not_sent_twice(db, event):
    with patch("app.tasks.appointment_tasks.EmailService.send_appointment_email", return_value=True) as send:
        deliver_event(db, event.id)
        assert deliver_event(db, event.id) == "delivered"
    assert send.call_count == 1


def test_failure_is_recorded_and_raised_for_retry(db, event):
    with patch(
            "app.tasks.appointment_tasks.EmailService.send_appointment_email",
            side_effect=ConnectionError("smtp down")
    ):
        with pytest.raises(ConnectionError):
            deliver_event(db, event.id)

    db.refresh(event)
    assert event.status == "pending"
    assert event.attempts == 1
    assert "smtp down" in event.last_error


def test_event_fails_after_max_attempts(db, event):
    event.attempts = 4
    db.commit()
    with patch(
            "app.tasks.appointment_tasks.EmailService.send_appointment_email",
            side_effect=ConnectionError("smtp down")
    ):
        assert deliver_event(db, event.id) == "failed"


def test_missing_event(db):
    assert deliver_event(db, uuid.uuid4()) == "missing"


def test_enqueue_failure_is_swallowed():
    with patch(
            "app.tasks.appointment_tasks.deliver_appointment_event.delay",
            side_effect=ConnectionError("broker down")
    ) as delay:
        enqueue_event_delivery([uuid.uuid4(), uuid.uuid4()])
    assert delay.call_count == 2


def test_payload_renders_email(event):
    from app.services.email.email_service import EmailService

    subject, html, plain = EmailService.render_appointment_email(event.event_type, event.payload)
    assert "Barbearia Central" in subject
    assert "Maria Silva" in plain
    assert "10:00" in plain
