"""Booking operations against a real database"""
import threading
import uuid
from datetime import datetime, time, timedelta

import pytest

from app.core.exceptions import (
    BookingValidationError,
    DuplicateBooking,
    EntitlementDenied,
    InvalidToken,
    NotFound,
    NotModifiable,
    SlotUnavailable,
    TenantAccessDenied,
)
from app.models import Appointment, AppointmentEvent, Customer, Professional, PunctualTimeBlock
from app.repositories import AppointmentRepository, CustomerRepository, EstablishmentRepository
from app.services.appointment.booking_orchestrator import BookingOrchestrator
from app.services.availability.availability_service import AvailabilityService
from tests.conftest import NOW, TOMORROW


def at(hour, minute=0, day=TOMORROW):
    return datetime.combine(day, time(hour, minute))


def book(db, establishment, service, professional, start_at, phone="11999990000", **kwargs):
    return BookingOrchestrator.create_appointment(
        db,
        slug=establishment.slug,
        service_id=service.id,
        professional_id=professional.id,
        start_at=start_at,
        customer_name=kwargs.pop("customer_name", "Maria Silva"),
        customer_phone=phone,
        now=kwargs.pop("now", NOW),
        **kwargs
    )


class TestCreate:

    def test_books_slot_and_returns_token(self, db, establishment, service, professional, enqueued):
        result = book(db, establishment, service, professional, at(10), customer_email="maria@example.com")

        appointment = db.get(Appointment, uuid.UUID(result["appointment_id"]))
        assert appointment.status == "booked"
        assert appointment.end_at == at(10, 30)
        assert appointment.seat == 0
        assert appointment.manage_token_hash != result["manage_token"]
        assert appointment.customer.email == "maria@example.com"

        events = db.query(AppointmentEvent).all()
        assert [e.event_type for e in events] == ["appointment.created"]
        assert enqueued == [events[0].id]
        assert result["manage_token"] not in str(events[0].payload)

    def test_booked_slot_disappears_from_listing(self, db, establishment, service, professional):
        book(db, establishment, service, professional, at(10))
        slots = AvailabilityService.list_available_slots(
            db, establishment.id, professional.id, service.duration_minutes, TOMORROW, now=NOW
        )
        assert "10:00" not in slots
        assert "09:45" not in slots
        assert "10:30" in slots

    def test_second_booking_same_slot_is_unavailable(self, db, establishment, service, professional):
        book(db, establishment, service, professional, at(10))
        with pytest.raises(SlotUnavailable):
            book(db, establishment, service, professional, at(10), phone="11988887777")

    def test_same_customer_same_slot_is_duplicate(self, db, establishment, service, professional):
        book(db, establishment, service, professional, at(10))
        with pytest.raises(DuplicateBooking):
            book(db, establishment, service, professional, at(10))

    def test_start_off_the_grid_or_outside_hours(self, db, establishment, service, professional):
        with pytest.raises(SlotUnavailable):
            book(db, establishment, service, professional, at(10, 5))
        with pytest.raises(SlotUnavailable):
            book(db, establishment, service, professional, at(17, 45))

    def test_blocked_time_is_unavailable(self, db, establishment, service, professional):
        db.add(PunctualTimeBlock(
            establishment_id=establishment.id,
            start_at=at(12),
            end_at=at(13),
            reason="Reunião",
        ))
        db.commit()

        with pytest.raises(SlotUnavailable):
            book(db, establishment, service, professional, at(12, 15))
        book(db, establishment, service, professional, at(11, 30))

    def test_capacity_two_takes_two_seats(self, db, establishment, service, professional):
        professional.capacity = 2
        db.commit()

        first = book(db, establishment, service, professional, at(10))
        second = book(db, establishment, service, professional, at(10), phone="11988887777")
        with pytest.raises(SlotUnavailable):
            book(db, establishment, service, professional, at(10), phone="11977776666")

        seats = {
            db.get(Appointment, uuid.UUID(r["appointment_id"])).seat for r in (first, second)
        }
        assert seats == {0, 1}

    def test_mismatched_end_at_is_rejected(self, db, establishment, service, professional):
        with pytest.raises(BookingValidationError):
            book(db, establishment, service, professional, at(10), end_at=at(11))
        book(db, establishment, service, professional, at(10), end_at=at(10, 30))

    @pytest.mark.parametrize("field,value", [
        ("phone", "123"),
        ("customer_name", "   "),
        ("customer_email", "not-an-email"),
        ("notes", "x" * 501),
    ])
    def test_invalid_customer_data(self, db, establishment, service, professional, field, value):
        kwargs = {field: value}
        with pytest.raises(BookingValidationError):
            book(db, establishment, service, professional, at(10), **kwargs)

    def test_unknown_slug_is_entitlement_denied(self, db, establishment, service, professional):
        with pytest.raises(EntitlementDenied) as exc_info:
            BookingOrchestrator.create_appointment(
                db, "nao-existe", service.id, professional.id, at(10), "Maria", "11999990000", now=NOW
            )
        assert exc_info.value.reason == "NO_ESTABLISHMENT"

    def test_expired_trial_blocks_booking(self, db, establishment, service, professional):
        establishment.trial_ends_at = NOW - timedelta(seconds=1)
        db.commit()
        with pytest.raises(EntitlementDenied) as exc_info:
            book(db, establishment, service, professional, at(10))
        assert exc_info.value.error_code == "TRIAL_EXPIRED"

    def test_booking_disabled(self, db, establishment, service, professional):
        establishment.booking_enabled = False
        db.commit()
        with pytest.raises(BookingValidationError):
            book(db, establishment, service, professional, at(10))

    def test_professional_of_other_tenant_is_denied(self, db, establishment, service, other_establishment):
        _, foreign_professional, _ = other_establishment
        with pytest.raises(TenantAccessDenied):
            book(db, establishment, service, foreign_professional, at(10))
        assert db.query(Appointment).count() == 0

    def test_service_of_other_tenant_is_denied(self, db, establishment, professional, other_establishment):
        _, _, foreign_service = other_establishment
        with pytest.raises(TenantAccessDenied):
            book(db, establishment, foreign_service, professional, at(10))

    def test_customer_is_reused_by_phone(self, db, establishment, service, professional):
        book(db, establishment, service, professional, at(10), phone="(11) 99999-0000")
        book(db, establishment, service, professional, at(11), phone="11999990000", customer_name="Maria S.")
        customers = db.query(Customer).all()
        assert len(customers) == 1
        assert customers[0].name == "Maria S."


def limit_monthly_appointments(monkeypatch, limit):
    monkeypatch.setattr(
        "app.services.entitlement.entitlement_guard.get_settings",
        lambda: type("S", (), {
            "FREE_PLAN_CODE": "free",
            "FREE_PLAN_NAME": "Gratuito",
            "FREE_PLAN_MAX_PROFESSIONALS": 2,
            "FREE_PLAN_MAX_APPOINTMENTS_MONTH": limit,
        })()
    )


class TestQuota:

    def test_limit_reached_then_recovered_by_cancel(self, db, establishment, service, professional, monkeypatch):
        limit_monthly_appointments(monkeypatch, 2)

        first = book(db, establishment, service, professional, at(9))
        book(db, establishment, service, professional, at(10))
        with pytest.raises(EntitlementDenied) as exc_info:
            book(db, establishment, service, professional, at(11))
        assert exc_info.value.reason == "APPOINTMENT_LIMIT_REACHED"

        BookingOrchestrator.cancel(db, uuid.UUID(first["appointment_id"]), first["manage_token"], now=NOW)
        book(db, establishment, service, professional, at(11))

    def test_booking_locks_the_establishment_row(self, db, establishment, service, professional, monkeypatch):
        calls = []
        original = EstablishmentRepository.get_by_slug

        def spy(session, slug, for_update=False):
            calls.append(for_update)
            return original(session, slug, for_update=for_update)

        monkeypatch.setattr(EstablishmentRepository, "get_by_slug", staticmethod(spy))
        book(db, establishment, service, professional, at(10))
        assert calls == [True]


class TestUniqueIndexes:
    """A writer that slips past the locks still cannot double-book or duplicate a customer"""

    @pytest.fixture
    def past_the_lock(self, monkeypatch):
        monkeypatch.setattr(AvailabilityService, "is_slot_available", staticmethod(lambda *a, **kw: True))
        monkeypatch.setattr(AppointmentRepository, "used_seats", staticmethod(lambda *a, **kw: set()))

    def test_seat_index_on_create_is_slot_unavailable(
            self, db, establishment, service, professional, enqueued, past_the_lock
    ):
        book(db, establishment, service, professional, at(10))

        with pytest.raises(SlotUnavailable):
            book(db, establishment, service, professional, at(10), phone="11988887777")

        assert db.query(Appointment).count() == 1
        assert db.query(AppointmentEvent).count() == 1
        assert len(enqueued) == 1
        book(db, establishment, service, professional, at(11), phone="11988887777")

    def test_seat_index_on_reschedule_is_slot_unavailable(self, db, establishment, service, professional, past_the_lock):
        created = book(db, establishment, service, professional, at(10))
        book(db, establishment, service, professional, at(15), phone="11988887777")

        with pytest.raises(SlotUnavailable):
            BookingOrchestrator.reschedule(
                db, uuid.UUID(created["appointment_id"]), created["manage_token"], at(15), now=NOW
            )

        appointment = db.get(Appointment, uuid.UUID(created["appointment_id"]))
        db.refresh(appointment)
        assert appointment.start_at == at(10)

    def test_customer_created_concurrently_is_reused(self, db, establishment, service, professional, monkeypatch):
        book(db, establishment, service, professional, at(10))
        original = CustomerRepository.get_by_phone
        lookups = []

        def first_lookup_misses(session, establishment_id, phone):
            lookups.append(phone)
            if len(lookups) == 1:
                return None
            return original(session, establishment_id, phone)

        monkeypatch.setattr(CustomerRepository, "get_by_phone", staticmethod(first_lookup_misses))
        book(db, establishment, service, professional, at(11), customer_name="Maria S.")

        customers = db.query(Customer).all()
        assert len(customers) == 1
        assert customers[0].name == "Maria S."
        assert {a.customer_id for a in db.query(Appointment).all()} == {customers[0].id}
        assert len(lookups) == 2


class TestReschedule:

    def test_moves_in_place_and_keeps_token(self, db, establishment, service, professional, enqueued):
        created = book(db, establishment, service, professional, at(10))
        appointment_id = uuid.UUID(created["appointment_id"])

        BookingOrchestrator.reschedule(db, appointment_id, created["manage_token"], at(15), now=NOW)

        appointment = db.get(Appointment, appointment_id)
        assert appointment.start_at == at(15)
        assert appointment.end_at == at(15, 30)
        assert appointment.updated_at == NOW
        assert appointment.updated_at.tzinfo is None
        detail = BookingOrchestrator.get_by_token(db, establishment.slug, created["manage_token"])
        assert detail["id"] == str(appointment_id)
        assert len(enqueued) == 2

    def test_can_move_onto_overlapping_slot_of_itself(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        BookingOrchestrator.reschedule(
            db, uuid.UUID(created["appointment_id"]), created["manage_token"], at(10, 15), now=NOW
        )

    def test_target_taken(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        book(db, establishment, service, professional, at(15), phone="11988887777")
        with pytest.raises(SlotUnavailable):
            BookingOrchestrator.reschedule(
                db, uuid.UUID(created["appointment_id"]), created["manage_token"], at(15), now=NOW
            )
        assert db.get(Appointment, uuid.UUID(created["appointment_id"])).start_at == at(10)

    def test_wrong_token(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        with pytest.raises(InvalidToken):
            BookingOrchestrator.reschedule(db, uuid.UUID(created["appointment_id"]), "bogus", at(15), now=NOW)

    def test_unknown_appointment_is_invalid_token(self, db):
        with pytest.raises(InvalidToken):
            BookingOrchestrator.reschedule(db, uuid.uuid4(), "bogus", at(15), now=NOW)

    def test_canceled_cannot_be_rescheduled(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        appointment_id = uuid.UUID(created["appointment_id"])
        BookingOrchestrator.cancel(db, appointment_id, created["manage_token"], now=NOW)
        with pytest.raises(NotModifiable):
            BookingOrchestrator.reschedule(db, appointment_id, created["manage_token"], at(15), now=NOW)


class TestModificationWindow:
    """Appointment at 10:00 with reschedule_min_hours=2"""

    def test_window(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        appointment_id = uuid.UUID(created["appointment_id"])
        token = created["manage_token"]

        with pytest.raises(NotModifiable) as exc_info:
            BookingOrchestrator.reschedule(db, appointment_id, token, at(15), now=at(8, 30))
        assert "2 hour" in exc_info.value.message

        with pytest.raises(NotModifiable):
            BookingOrchestrator.cancel(db, appointment_id, token, now=at(8))

        BookingOrchestrator.reschedule(db, appointment_id, token, at(15), now=at(7, 59))


class TestCancel:

    def test_cancel_is_idempotent(self, db, establishment, service, professional, enqueued):
        created = book(db, establishment, service, professional, at(10))
        appointment_id = uuid.UUID(created["appointment_id"])

        first = BookingOrchestrator.cancel(db, appointment_id, created["manage_token"], now=NOW)
        second = BookingOrchestrator.cancel(db, appointment_id, created["manage_token"], now=NOW)

        assert first == second == {"success": True, "status": "canceled"}
        assert db.query(AppointmentEvent).filter(AppointmentEvent.event_type == "appointment.canceled").count() == 1
        assert len(enqueued) == 2

    def test_canceled_slot_is_free_again(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        BookingOrchestrator.cancel(db, uuid.UUID(created["appointment_id"]), created["manage_token"], now=NOW)
        book(db, establishment, service, professional, at(10), phone="11988887777")

    def test_wrong_token(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        with pytest.raises(InvalidToken):
            BookingOrchestrator.cancel(db, uuid.UUID(created["appointment_id"]), "bogus", now=NOW)


class TestGetByToken:

    def test_detail_is_denormalized(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        detail = BookingOrchestrator.get_by_token(db, establishment.slug, created["manage_token"])
        assert detail["establishment"]["slug"] == establishment.slug
        assert detail["service"]["name"] == "Corte"
        assert detail["professional"]["name"] == "Carlos"
        assert detail["customer"]["phone"] == "11999990000"

    def test_token_is_not_valid_under_another_slug(self, db, establishment, service, professional, other_establishment):
        created = book(db, establishment, service, professional, at(10))
        foreign, _, _ = other_establishment
        with pytest.raises(NotFound):
            BookingOrchestrator.get_by_token(db, foreign.slug, created["manage_token"])

    def test_unknown_token(self, db, establishment):
        with pytest.raises(NotFound):
            BookingOrchestrator.get_by_token(db, establishment.slug, "bogus")


class TestStaffOperations:

    def test_owner_confirms_and_completes(self, db, establishment, service, professional, owner_id):
        created = book(db, establishment, service, professional, at(10))
        appointment_id = uuid.UUID(created["appointment_id"])

        BookingOrchestrator.confirm(db, establishment.id, appointment_id, owner_id, now=NOW)
        result = BookingOrchestrator.complete(db, establishment.id, appointment_id, owner_id, now=NOW)

        assert result["appointment"]["status"] == "completed"
        assert db.get(Appointment, appointment_id).completed_by == "establishment"

    def test_professional_marks_own_no_show(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        appointment_id = uuid.UUID(created["appointment_id"])
        BookingOrchestrator.mark_no_show(db, establishment.id, appointment_id, professional.user_id, now=NOW)
        assert db.get(Appointment, appointment_id).status == "no_show"

    def test_stranger_is_denied(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        with pytest.raises(TenantAccessDenied):
            BookingOrchestrator.confirm(db, establishment.id, uuid.UUID(created["appointment_id"]), uuid.uuid4())

    def test_terminal_cannot_be_confirmed(self, db, establishment, service, professional, owner_id):
        created = book(db, establishment, service, professional, at(10))
        appointment_id = uuid.UUID(created["appointment_id"])
        BookingOrchestrator.cancel(db, appointment_id, created["manage_token"], now=NOW)
        with pytest.raises(NotModifiable):
            BookingOrchestrator.confirm(db, establishment.id, appointment_id, owner_id, now=NOW)

    def test_customer_completes_by_token(self, db, establishment, service, professional):
        created = book(db, establishment, service, professional, at(10))
        appointment_id = uuid.UUID(created["appointment_id"])
        BookingOrchestrator.complete_by_token(db, appointment_id, created["manage_token"], now=NOW)
        appointment = db.get(Appointment, appointment_id)
        assert appointment.status == "completed"
        assert appointment.completed_by == "customer"


def test_concurrent_bookings_capacity_one(session_factory, establishment, service, professional):
    """Five simultaneous requests for one slot: exactly one wins."""
    outcomes = []
    barrier = threading.Barrier(5)

    def attempt(index):
        session = session_factory()
        try:
            barrier.wait()
            book(session, establishment, service, professional, at(10), phone=f"1199999000{index}")
            outcomes.append("ok")
        except SlotUnavailable:
            outcomes.append("taken")
        finally:
            session.close()

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["ok", "taken", "taken", "taken", "taken"]

    session = session_factory()
    try:
        assert session.query(Appointment).filter(Appointment.status == "booked").count() == 1
    finally:
        session.close()


def test_concurrent_bookings_respect_monthly_quota(session_factory, db, establishment, service, professional, monkeypatch):
    """Two professionals, one appointment left in the month: only one booking lands."""
    limit_monthly_appointments(monkeypatch, 1)
    second = Professional(establishment_id=establishment.id, name="Ana", capacity=1, active=True)
    db.add(second)
    db.commit()

    outcomes = []
    barrier = threading.Barrier(2)

    def attempt(target, phone):
        session = session_factory()
        try:
            barrier.wait()
            book(session, establishment, service, target, at(10), phone=phone)
            outcomes.append("ok")
        except EntitlementDenied as e:
            outcomes.append(e.reason)
        finally:
            session.close()

    threads = [
        threading.Thread(target=attempt, args=(professional, "11999990001")),
        threading.Thread(target=attempt, args=(second, "11999990002")),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["APPOINTMENT_LIMIT_REACHED", "ok"]
