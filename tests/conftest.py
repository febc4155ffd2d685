"""Pytest configuration and fixtures."""

import itertools
import os
from datetime import date, timedelta
from typing import Generator

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SEED_ON_STARTUP", "false")
os.environ.setdefault("AUDIT_RETENTION_DAYS", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from staff_roster.core.security import create_access_token, get_password_hash
from staff_roster.db.base import Base
from staff_roster.db.session import configure_sqlite, get_db
from staff_roster.main import app
# Import all models to ensure they're registered with Base.metadata
from staff_roster.models import *  # noqa: F401,F403
from staff_roster.models.role import Role
from staff_roster.models.roster import Roster, RosterSlot
from staff_roster.models.store import Store
from staff_roster.models.user import User
from staff_roster.schemas.store import StoreSettings
from staff_roster.services.seed_service import seed_defaults

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_PASSWORD = "testpass123"

STORE_MANAGER = "Store Manager"
SHIFT_IN_CHARGE = "Shift In Charge"
INVENTORY_EXECUTIVE = "Inventory Executive"
PICKER_PACKER = "Picker Packer (Warehouse)"
AD_HOC_PICKER = "Picker Packer (Ad-Hoc)"

_password_hash = None


def _hashed_test_password() -> str:
    # bcrypt is slow; hash once per run
    global _password_hash
    if _password_hash is None:
        _password_hash = get_password_hash(TEST_PASSWORD)
    return _password_hash


def _bearer(user: User) -> dict:
    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "store_id": user.store_id}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            # A failed request must not leave pending changes for the next one
            db_session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiters during tests to avoid flaky failures
    from staff_roster.core.rate_limit import limiter, user_limiter
    limiter.enabled = False
    user_limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    user_limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def store(db_session: Session) -> Store:
    """The default store with seeded roles, tasks and shift definitions."""
    return seed_defaults(db_session)


@pytest.fixture
def roles(db_session: Session, store: Store) -> dict:
    return {role.name: role for role in db_session.query(Role).all()}


@pytest.fixture
def store_settings(db_session: Session, store: Store):
    """Callable that overrides store settings, e.g. ``store_settings(allow_overlap=True)``."""
    def _apply(**overrides) -> StoreSettings:
        current = StoreSettings.model_validate(store.settings or {})
        updated = current.model_copy(update=overrides)
        store.settings = updated.model_dump(mode="json")
        db_session.commit()
        return updated

    return _apply


@pytest.fixture
def make_user(db_session: Session, store: Store, roles: dict):
    """Factory creating users of a named role."""
    counter = itertools.count(1)

    def _make(role_name: str = PICKER_PACKER, **fields) -> User:
        n = next(counter)
        role = roles[role_name]
        values = {
            "store_id": store.id,
            "employee_id": f"EMP{n:03d}",
            "first_name": f"User{n}",
            "last_name": "Test",
            "email": f"user{n}@example.com",
            "password_hash": _hashed_test_password(),
            "role_id": role.id,
            "experience_level": "experienced",
            "pp_type": role.default_pp_type,
            "week_off_days": [],
            "is_active": True,
        }
        values.update(fields)
        user = User(**values)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def manager(make_user) -> User:
    return make_user(STORE_MANAGER, first_name="Maya", email="manager@example.com")


@pytest.fixture
def shift_in_charge(make_user) -> User:
    return make_user(SHIFT_IN_CHARGE, first_name="Sam", email="si@example.com")


@pytest.fixture
def inventory_executive(make_user) -> User:
    return make_user(INVENTORY_EXECUTIVE, first_name="Ines", email="ie@example.com")


@pytest.fixture
def picker(make_user) -> User:
    return make_user(PICKER_PACKER, first_name="Priya", email="picker@example.com")


@pytest.fixture
def auth_headers():
    """Callable returning Bearer headers for a user."""
    return _bearer


@pytest.fixture
def manager_headers(manager: User) -> dict:
    return _bearer(manager)


@pytest.fixture
def si_headers(shift_in_charge: User) -> dict:
    return _bearer(shift_in_charge)


@pytest.fixture
def picker_headers(picker: User) -> dict:
    return _bearer(picker)


@pytest.fixture
def make_roster(db_session: Session, store: Store):
    """Factory creating a roster with one slot per user id (None for a vacant slot)."""
    def _make(
        user_ids,
        roster_date: date = None,
        shift_name: str = "Morning Shift",
        status: str = "draft",
        start_time: str = "08:00",
        end_time: str = "17:00",
    ) -> Roster:
        roster_date = roster_date or date.today() + timedelta(days=1)
        roster = Roster(store_id=store.id, date=roster_date, shift_name=shift_name, status=status)
        for user_id in user_ids:
            roster.slots.append(RosterSlot(
                user_id=user_id,
                shift_name=shift_name,
                date=roster_date,
                assigned_tasks=[],
                start_time=start_time,
                end_time=end_time,
                status="published" if status == "published" else "draft",
            ))
        db_session.add(roster)
        db_session.commit()
        db_session.refresh(roster)
        return roster

    return _make
