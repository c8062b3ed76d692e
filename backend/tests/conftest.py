import os

# Must be set before chargeslot.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NO_SHOW_CHECKER_ENABLED", "false")

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from chargeslot.database import get_db, make_engine
from chargeslot.main import app
from chargeslot.models import Base, Stations, TimeSlots, Users
from chargeslot.services import events
from chargeslot.services.reservations import ReservationCoordinator
from chargeslot.services.slots import SlotConfig
from chargeslot.services.stations import StationLifecycleManager

# All service-level tests run against this horizon start
START = date(2024, 6, 1)


@pytest.fixture(scope="function")
def engine():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Session:
    """One session per test, shared with the API client."""
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def redis_mock(monkeypatch):
    mock = MagicMock()
    monkeypatch.setattr(events, "redis_client", mock)
    return mock


@pytest.fixture
def client(db: Session):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Don't use context manager: lifespan would touch the configured database
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


# ============================================================================
# DOMAIN FIXTURES
# ============================================================================


@pytest.fixture
def slot_config() -> SlotConfig:
    return SlotConfig(horizon_days=30, slot_minutes=60)


@pytest.fixture
def make_user(db: Session):
    def _make_user(name: str = "Driver", role: str = "user", **fields) -> Users:
        user = Users(name=name, role=role, **fields)
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def user(make_user) -> Users:
    return make_user("Asha", email="asha@example.com", vehicle_model="Nexon EV")


@pytest.fixture
def other_user(make_user) -> Users:
    return make_user("Ravi", email="ravi@example.com")


@pytest.fixture
def admin(make_user) -> Users:
    return make_user("Operator", role="admin", email="ops@example.com")


@pytest.fixture
def make_station(db: Session, slot_config: SlotConfig):
    def _make_station(start_date: date = START, config: SlotConfig | None = None, **overrides) -> Stations:
        data = {
            "name": "Central Plaza",
            "address": "MG Road 1",
            "latitude": 12.9716,
            "longitude": 77.5946,
            "opening_time": "08:00",
            "closing_time": "20:00",
            "capacity": 2,
            "rate_per_hour": 12.0,
            "status": "active",
        }
        data.update(overrides)
        manager = StationLifecycleManager(db, config or slot_config)
        return manager.create_station(data, start_date=start_date)

    return _make_station


@pytest.fixture
def station(make_station) -> Stations:
    return make_station()


@pytest.fixture
def slot_at(db: Session):
    """Active slot of a station by start time."""

    def _slot_at(station: Stations, start_time: str, day: date = START) -> TimeSlots:
        return (
            db.query(TimeSlots)
            .filter(
                TimeSlots.station_id == station.id,
                TimeSlots.date == day.isoformat(),
                TimeSlots.start_time == start_time,
                TimeSlots.is_active == 1,
            )
            .one()
        )

    return _slot_at


@pytest.fixture
def clock():
    """The day before START, noon: every START slot is still in the future."""
    return lambda: datetime(2024, 5, 31, 12, 0)


@pytest.fixture
def coordinator(db: Session, clock) -> ReservationCoordinator:
    return ReservationCoordinator(db, advance_percent=0.10, clock=clock)
