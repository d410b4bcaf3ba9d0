# tests/conftest.py
"""
Pytest Configuration and Fixtures

Every test gets its own SQLite file so the BEGIN IMMEDIATE locking used in
production-like concurrency tests behaves as it would on disk.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("PUBLIC_REQUESTS_PER_SECOND", "1000")

import uuid
from datetime import datetime, time, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from app.config.database import build_engine, create_tables
from app.models import BusinessHours, Establishment, Professional, Service

# Monday 9 March 2026, 08:00 local
NOW = datetime(2026, 3, 9, 8, 0)
TOMORROW = NOW.date() + timedelta(days=1)


@pytest.fixture
def engine(tmp_path):
    """Fresh schema in a per-test SQLite file."""
    engine = build_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def enqueued(monkeypatch):
    """Capture outbox dispatches instead of talking to the broker."""
    event_ids = []
    monkeypatch.setattr(
        "app.services.appointment.booking_orchestrator.enqueue_event_delivery",
        lambda ids: event_ids.extend(ids)
    )
    return event_ids


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def establishment(db, owner_id):
    """Establishment open 09:00-18:00 every day, on an open-ended trial."""
    establishment = Establishment(
        name="Barbearia Central",
        slug="barbearia-central",
        owner_user_id=owner_id,
        status="trial",
        trial_ends_at=None,
        booking_enabled=True,
        reschedule_min_hours=2,
        max_future_days=60,
        slot_interval_minutes=15,
        buffer_minutes=0,
        phone="1133334444",
        address="Rua Augusta, 100",
    )
    db.add(establishment)
    db.flush()

    for weekday in range(7):
        db.add(BusinessHours(
            establishment_id=establishment.id,
            weekday=weekday,
            open_time=time(9, 0),
            close_time=time(18, 0),
            closed=False,
        ))
    db.commit()
    return establishment


@pytest.fixture
def professional(db, establishment):
    professional = Professional(
        establishment_id=establishment.id,
        name="Carlos",
        user_id=uuid.uuid4(),
        capacity=1,
        active=True,
    )
    db.add(professional)
    db.commit()
    return professional


@pytest.fixture
def service(db, establishment):
    service = Service(
        establishment_id=establishment.id,
        name="Corte",
        duration_minutes=30,
        price_cents=5000,
        active=True,
    )
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def other_establishment(db):
    """A second tenant with its own professional and service."""
    establishment = Establishment(
        name="Studio Norte",
        slug="studio-norte",
        owner_user_id=uuid.uuid4(),
        status="active",
    )
    db.add(establishment)
    db.flush()
    professional = Professional(establishment_id=establishment.id, name="Ana", capacity=1)
    service = Service(establishment_id=establishment.id, name="Manicure", duration_minutes=45)
    db.add_all([professional, service])
    db.commit()
    return establishment, professional, service
