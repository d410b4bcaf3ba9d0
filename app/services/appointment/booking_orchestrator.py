# ============================================================================
# app/services/appointment/booking_orchestrator.py
# Create / reschedule / cancel / complete under one unit of work
# ============================================================================
"""
Every mutating operation runs in the caller's Session and ends with a single
commit. New bookings lock the establishment row first, which keeps the
monthly quota count exact, then the professional row (SELECT ... FOR UPDATE
on PostgreSQL, BEGIN IMMEDIATE on SQLite). The partial unique index on
(professional_id, start_at, seat) catches anything that slips past the lock.
"""
import re
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    BookingCoreError,
    BookingValidationError,
    DuplicateBooking,
    EntitlementDenied,
    InvalidToken,
    NotFound,
    NotModifiable,
    SlotUnavailable,
    TenantAccessDenied,
)
from app.models.appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from app.models.appointment_event import AppointmentEventType
from app.models.establishment import Establishment
from app.models.professional import Professional
from app.repositories import (
    AppointmentRepository,
    CustomerRepository,
    EstablishmentRepository,
    EventRepository,
    ProfessionalRepository,
    ServiceRepository,
)
from app.services.appointment.appointment_ledger import (
    ensure_self_service_window,
    generate_manage_token,
    hash_token,
    is_terminal,
    next_seat,
    transition,
    verify_token,
)
from app.services.appointment.appointment_query_service import AppointmentQueryService
from app.services.availability.availability_service import AvailabilityService
from app.services.entitlement.entitlement_service import EntitlementService
from app.services.entitlement.entitlement_guard import RejectReason
from app.tasks.appointment_tasks import enqueue_event_delivery
from app.utils.time_utils import local_now, to_local_naive
import logging

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_NOTES_LENGTH = 500
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_phone(phone: Optional[str]) -> str:
    digits = re.sub(r"\D", "", phone or "")
    if not 10 <= len(digits) <= 11:
        raise BookingValidationError("customer_phone must have 10 or 11 digits")
    return digits


def _validate_customer(name: Optional[str], email: Optional[str], notes: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise BookingValidationError("customer_name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise BookingValidationError(f"customer_name cannot exceed {MAX_NAME_LENGTH} characters")
    if email and not EMAIL_PATTERN.match(email):
        raise BookingValidationError("customer_email is not a valid email address")
    if notes and len(notes) > MAX_NOTES_LENGTH:
        raise BookingValidationError(f"notes cannot exceed {MAX_NOTES_LENGTH} characters")
    return name


def _resolve_end(start_at: datetime, duration_minutes: int, end_at: Optional[datetime]) -> datetime:
    """end_at is always start + duration; a client-sent value must agree"""
    computed = start_at + timedelta(minutes=duration_minutes)
    if end_at is not None and to_local_naive(end_at) != computed:
        raise BookingValidationError("end_at does not match the service duration")
    return computed


def _flush(db: Session) -> None:
    """Flush pending rows; a unique-index violation means the slot was taken"""
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Booking flush lost a race: {e.orig}")
        raise SlotUnavailable()


def _commit(db: Session) -> None:
    """Commit the unit of work; a unique-index violation means the slot was taken"""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Booking commit lost a race: {e.orig}")
        raise SlotUnavailable()


def _claim_slot(
        db: Session,
        establishment: Establishment,
        professional: Professional,
        duration_minutes: int,
        start_at: datetime,
        now: datetime,
        exclude_appointment_id: Optional[UUID] = None
) -> int:
    """
    Re-validate a start inside the locked transaction and pick its seat.

    Raises:
        SlotUnavailable: the start is no longer offered or every seat is taken
    """
    if not AvailabilityService.is_slot_available(
            db,
            establishment,
            professional,
            duration_minutes,
            start_at,
            now=now,
            exclude_appointment_id=exclude_appointment_id,
    ):
        raise SlotUnavailable()

    used = AppointmentRepository.used_seats(
        db, professional.id, start_at, exclude_appointment_id=exclude_appointment_id
    )
    seat = next_seat(used, professional.capacity)
    if seat is None:
        raise SlotUnavailable()
    return seat


class BookingOrchestrator:
    """Composes entitlement, availability and the ledger into atomic booking operations"""

    @staticmethod
    def create_appointment(
            db: Session,
            slug: str,
            service_id: UUID,
            professional_id: UUID,
            start_at: datetime,
            customer_name: str,
            customer_phone: str,
            end_at: Optional[datetime] = None,
            customer_email: Optional[str] = None,
            notes: Optional[str] = None,
            customer_user_id: Optional[UUID] = None,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Book a slot for a customer.

        Returns:
            {"appointment_id": "...", "manage_token": "..."}; the token is
            only ever returned here.

        Raises:
            BookingValidationError, EntitlementDenied, SlotUnavailable,
            DuplicateBooking, TenantAccessDenied, NotFound
        """
        now = now or local_now()
        if start_at is None:
            raise BookingValidationError("start_at is required")
        start_at = to_local_naive(start_at)
        name = _validate_customer(customer_name, customer_email, notes)
        phone = _normalize_phone(customer_phone)

        try:
            establishment = EstablishmentRepository.get_by_slug(db, slug, for_update=True)
            if establishment is None:
                raise EntitlementDenied(RejectReason.NO_ESTABLISHMENT)

            decision = EntitlementService.evaluate(db, establishment, now=now)
            if not decision.accepted:
                raise EntitlementDenied(decision.reason, decision.message)

            if not establishment.booking_enabled:
                raise BookingValidationError("Online booking is disabled for this establishment")

            service = ServiceRepository.get(db, establishment.id, service_id)
            if service is None:
                raise NotFound("Service not found")
            if not service.active:
                raise BookingValidationError("Service is not available for booking")

            end_at = _resolve_end(start_at, service.duration_minutes, end_at)

            professional = ProfessionalRepository.get(db, establishment.id, professional_id, for_update=True)
            if professional is None:
                raise NotFound("Professional not found")
            if not professional.active:
                raise BookingValidationError("Professional is not available for booking")

            if AppointmentRepository.find_active_duplicate(db, establishment.id, professional.id, start_at, phone):
                raise DuplicateBooking()

            seat = _claim_slot(db, establishment, professional, service.duration_minutes, start_at, now)

            customer = CustomerRepository.upsert(
                db, establishment.id, name, phone, email=customer_email, user_id=customer_user_id
            )

            token, token_hash = generate_manage_token()
            appointment = Appointment(
                establishment_id=establishment.id,
                professional_id=professional.id,
                service_id=service.id,
                customer_id=customer.id,
                start_at=start_at,
                end_at=end_at,
                seat=seat,
                customer_notes=notes,
                status=AppointmentStatus.BOOKED.value,
                manage_token_hash=token_hash,
                created_at=now,
            )
            db.add(appointment)
            _flush(db)

            event = EventRepository.record(
                db, appointment, AppointmentEventType.CREATED,
                AppointmentQueryService.serialize(appointment, detailed=True)
            )
            _commit(db)
        except BookingCoreError:
            db.rollback()
            raise

        logger.info(
            f"Appointment {appointment.id} booked for professional {professional.id} "
            f"at {start_at.isoformat()} (establishment {establishment.slug})"
        )
        enqueue_event_delivery([event.id])

        return {"appointment_id": str(appointment.id), "manage_token": token}

    @staticmethod
    def reschedule(
            db: Session,
            appointment_id: UUID,
            manage_token: str,
            new_start_at: datetime,
            new_end_at: Optional[datetime] = None,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Move an appointment to a new start, keeping its duration and token.

        Raises:
            InvalidToken, NotModifiable, SlotUnavailable, BookingValidationError
        """
        now = now or local_now()
        if new_start_at is None:
            raise BookingValidationError("new_start_at is required")
        new_start_at = to_local_naive(new_start_at)

        try:
            appointment = AppointmentRepository.get_for_token_check(db, appointment_id)
            if not verify_token(appointment, manage_token):
                raise InvalidToken()

            if appointment.status not in ACTIVE_STATUSES:
                raise NotModifiable(f"A {appointment.status} appointment cannot be rescheduled.")
            ensure_self_service_window(appointment, now)

            duration_minutes = int((appointment.end_at - appointment.start_at).total_seconds() // 60)
            new_end_at = _resolve_end(new_start_at, duration_minutes, new_end_at)

            professional = ProfessionalRepository.get(
                db, appointment.establishment_id, appointment.professional_id, for_update=True
            )
            # Re-read under the lock; a concurrent cancel may have landed
            db.refresh(appointment)
            if appointment.status not in ACTIVE_STATUSES:
                raise SlotUnavailable("The appointment changed while rescheduling. Reload and try again.")

            seat = _claim_slot(
                db,
                appointment.establishment,
                professional,
                duration_minutes,
                new_start_at,
                now,
                exclude_appointment_id=appointment.id,
            )

            old_start = appointment.start_at
            appointment.start_at = new_start_at
            appointment.end_at = new_end_at
            appointment.seat = seat
            appointment.updated_at = now
            _flush(db)

            payload = AppointmentQueryService.serialize(appointment, detailed=True)
            payload["previous_start_at"] = old_start.isoformat()
            event = EventRepository.record(db, appointment, AppointmentEventType.RESCHEDULED, payload)
            _commit(db)
        except BookingCoreError:
            db.rollback()
            raise

        logger.info(f"Appointment {appointment.id} rescheduled from {old_start.isoformat()} to {new_start_at.isoformat()}")
        enqueue_event_delivery([event.id])

        return {"success": True, "appointment": AppointmentQueryService.serialize(appointment)}

    @staticmethod
    def cancel(
            db: Session,
            appointment_id: UUID,
            manage_token: str,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Cancel by manage token. Cancelling an appointment that is already
        canceled, completed or no_show succeeds without changing it.

        Raises:
            InvalidToken, NotModifiable
        """
        now = now or local_now()

        try:
            appointment = AppointmentRepository.get_for_token_check(db, appointment_id, for_update=True)
            if not verify_token(appointment, manage_token):
                raise InvalidToken()

            if is_terminal(appointment):
                status = appointment.status
                logger.info(f"Cancel of appointment {appointment_id} ignored, already {status}")
                db.rollback()
                return {"success": True, "status": status}

            ensure_self_service_window(appointment, now)

            transition(appointment, AppointmentStatus.CANCELED.value, now)
            appointment.updated_at = now
            db.flush()

            event = EventRepository.record(
                db, appointment, AppointmentEventType.CANCELED,
                AppointmentQueryService.serialize(appointment, detailed=True)
            )
            _commit(db)
        except BookingCoreError:
            db.rollback()
            raise

        logger.info(f"Appointment {appointment.id} canceled by customer")
        enqueue_event_delivery([event.id])

        return {"success": True, "status": appointment.status}

    @staticmethod
    def get_by_token(db: Session, slug: str, manage_token: str) -> Dict[str, Any]:
        """
        Appointment detail for the self-service page.

        Raises:
            NotFound: unknown slug, or no appointment of that establishment
                      carries the token
        """
        establishment = EstablishmentRepository.get_by_slug(db, slug)
        if establishment is None or not manage_token:
            raise NotFound("Appointment not found")

        appointment = AppointmentRepository.get_by_token_hash(db, establishment.id, hash_token(manage_token))
        if appointment is None:
            raise NotFound("Appointment not found")

        return AppointmentQueryService.serialize(appointment, detailed=True)

    @staticmethod
    def complete_by_token(
            db: Session,
            appointment_id: UUID,
            manage_token: str,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Customer marks their own appointment as done"""
        now = now or local_now()

        try:
            appointment = AppointmentRepository.get_for_token_check(db, appointment_id, for_update=True)
            if not verify_token(appointment, manage_token):
                raise InvalidToken()

            result = BookingOrchestrator._apply_status(
                db, appointment, AppointmentStatus.COMPLETED.value, now, completed_by="customer"
            )
        except BookingCoreError:
            db.rollback()
            raise

        return result

    @staticmethod
    def confirm(
            db: Session,
            establishment_id: UUID,
            appointment_id: UUID,
            user_id: UUID,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        return BookingOrchestrator._staff_transition(
            db, establishment_id, appointment_id, user_id, AppointmentStatus.CONFIRMED.value, now
        )

    @staticmethod
    def complete(
            db: Session,
            establishment_id: UUID,
            appointment_id: UUID,
            user_id: UUID,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        return BookingOrchestrator._staff_transition(
            db, establishment_id, appointment_id, user_id, AppointmentStatus.COMPLETED.value, now
        )

    @staticmethod
    def mark_no_show(
            db: Session,
            establishment_id: UUID,
            appointment_id: UUID,
            user_id: UUID,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        return BookingOrchestrator._staff_transition(
            db, establishment_id, appointment_id, user_id, AppointmentStatus.NO_SHOW.value, now
        )

    @staticmethod
    def _staff_transition(
            db: Session,
            establishment_id: UUID,
            appointment_id: UUID,
            user_id: UUID,
            target: str,
            now: Optional[datetime]
    ) -> Dict[str, Any]:
        """
        Status change by the owner or a professional of the establishment.
        Professionals may only act on their own appointments.
        """
        now = now or local_now()

        try:
            role = EstablishmentRepository.authorize_staff(db, establishment_id, user_id)

            appointment = AppointmentRepository.get(db, establishment_id, appointment_id, for_update=True)
            if appointment is None:
                raise NotFound("Appointment not found")

            if role == "professional" and appointment.professional.user_id != user_id:
                logger.warning(f"User {user_id} tried to change appointment {appointment_id} of another professional")
                raise TenantAccessDenied()

            result = BookingOrchestrator._apply_status(
                db, appointment, target, now,
                completed_by=role if target == AppointmentStatus.COMPLETED.value else None
            )
        except BookingCoreError:
            db.rollback()
            raise

        return result

    @staticmethod
    def _apply_status(
            db: Session,
            appointment: Appointment,
            target: str,
            now: datetime,
            completed_by: Optional[str] = None
    ) -> Dict[str, Any]:
        transition(appointment, target, now, completed_by=completed_by)
        appointment.updated_at = now
        db.flush()

        event = None
        if target == AppointmentStatus.COMPLETED.value:
            event = EventRepository.record(
                db, appointment, AppointmentEventType.COMPLETED,
                AppointmentQueryService.serialize(appointment, detailed=True)
            )
        _commit(db)

        logger.info(f"Appointment {appointment.id} is now {target}")
        if event is not None:
            enqueue_event_delivery([event.id])

        return {"success": True, "appointment": AppointmentQueryService.serialize(appointment)}
