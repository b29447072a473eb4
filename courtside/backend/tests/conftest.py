from datetime import datetime, time
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.core.clock import FixedClock
from app.db.session import Base
from app.db import models


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock():
    # Monday morning
    return FixedClock(datetime(2025, 11, 3, 8, 0))


class Seed:
    """Small row factory shared by the service and API tests."""

    def __init__(self, session):
        self.session = session

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def user(self, name="Ana", role=models.UserRole.student, email=None):
        return self._save(models.User(name=name, email=email, role=role))

    def admin(self, name="Admin"):
        return self.user(name=name, role=models.UserRole.admin)

    def court(self, name="Court 1", hourly_price=Decimal("50.00"), is_active=True):
        return self._save(models.Court(name=name, hourly_price=hourly_price, is_active=is_active))

    def instructor(self, name="Bruno", hourly_rate=Decimal("80.00"), is_active=True):
        return self._save(
            models.Instructor(name=name, hourly_rate=hourly_rate, is_active=is_active)
        )

    def window(self, resource, weekday, starts_at=time(8, 0), ends_at=time(18, 0)):
        resource_type = (
            models.ResourceType.court
            if isinstance(resource, models.Court)
            else models.ResourceType.instructor
        )
        return self._save(
            models.WeeklyAvailability(
                resource_type=resource_type,
                resource_id=resource.id,
                weekday=weekday,
                starts_at=starts_at,
                ends_at=ends_at,
            )
        )

    def sport_class(self, name="Beach Tennis", capacity_max=2, duration_min=60, unit_price=None):
        return self._save(
            models.SportClass(
                name=name,
                sport="tennis",
                capacity_max=capacity_max,
                duration_min=duration_min,
                unit_price=unit_price,
            )
        )

    def schedule(self, sport_class, instructor, court, weekday=2, starts_at=time(19, 0)):
        return self._save(
            models.ClassSchedule(
                class_id=sport_class.id,
                weekday=weekday,
                starts_at=starts_at,
                instructor_id=instructor.id,
                court_id=court.id,
            )
        )

    def occurrence(self, sport_class, instructor, court, starts_at, ends_at, status=None):
        return self._save(
            models.ClassOccurrence(
                class_id=sport_class.id,
                instructor_id=instructor.id,
                court_id=court.id,
                starts_at=starts_at,
                ends_at=ends_at,
                status=status or models.OccurrenceStatus.scheduled,
            )
        )


@pytest.fixture()
def seed(db_session):
    return Seed(db_session)


@pytest.fixture()
def api_client(session_factory, clock):
    from fastapi import FastAPI
    from fastapi.testclient import TestClient
    from app.api.routes import availability, bookings, enrollments, occurrences
    from app.core.clock import get_clock
    from app.db.session import get_db

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    test_app = FastAPI()
    for module in (availability, bookings, occurrences, enrollments):
        test_app.include_router(module.router, prefix="/api/v1")
    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(test_app) as client:
        yield client

    test_app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    from app.core.security import create_access_token

    def build(user):
        return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}

    return build
