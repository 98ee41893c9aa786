"""Shared test fixtures and configuration.

Sets up environment variables before any ensemble imports and provides
a temp database, a mocked notification port and a seeded household.
"""

import os

# Patch env vars BEFORE any ensemble imports
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "Europe/Paris")
os.environ.setdefault("STRICT_DATE_PARSING", "false")

from dataclasses import dataclass
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

NOW = datetime(2026, 3, 2, 9, 0)


@dataclass
class Seed:
    """A household with an admin, a second adult, a child and a pet."""

    household_id: str
    invite_code: str
    admin: object
    adult: object
    child: object
    pet: object
    admin_actor: object
    adult_actor: object


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_ensemble.db")


@pytest.fixture
def database(tmp_db_path):
    """Return a Database backed by a temp file."""
    from ensemble.data.db import Database
    db = Database(db_path=tmp_db_path)
    yield db
    db.close()


@pytest.fixture
def household_db(database):
    from ensemble.data.db import HouseholdDB
    return HouseholdDB(database)


@pytest.fixture
def event_db(database):
    from ensemble.data.db import EventDB
    return EventDB(database)


@pytest.fixture
def task_db(database):
    from ensemble.data.db import TaskDB
    return TaskDB(database)


@pytest.fixture
def notification_db(database):
    from ensemble.data.db import NotificationDB
    return NotificationDB(database)


@pytest.fixture
def notifier():
    """A NotificationPort whose emit() records calls."""
    port = AsyncMock()
    port.emit = AsyncMock(return_value=None)
    return port


@pytest.fixture
def service(database, notifier):
    """HouseholdService with a mocked notifier, a fixed clock and lenient dates."""
    from ensemble.core.household_service import HouseholdService
    return HouseholdService(database, notifier, strict_dates=False, clock=lambda: NOW)


@pytest.fixture
def seed(household_db):
    """Seed one household directly through the storage layer."""
    from ensemble.data.models import Actor, MemberRole, MemberType, PetType

    household = household_db.create_household("The Martins", "INVITEcode23")
    admin = household_db.add_member(
        household.id, color="#3b82f6", role=MemberRole.ADMIN,
        user_id="u-admin", nickname="Alice",
    )
    adult = household_db.add_member(
        household.id, color="#ef4444", user_id="u-bob", nickname="Bob",
    )
    child = household_db.add_member(
        household.id, color="#f59e0b", type=MemberType.CHILD, nickname="Léa", age=8,
    )
    pet = household_db.add_member(
        household.id, color="#8b5cf6", type=MemberType.PET, nickname="Rex",
        pet_type=PetType.DOG,
    )
    return Seed(
        household_id=household.id,
        invite_code=household.invite_code,
        admin=admin,
        adult=adult,
        child=child,
        pet=pet,
        admin_actor=Actor(user_id="u-admin", name="Alice"),
        adult_actor=Actor(user_id="u-bob", name="Bob"),
    )


def emitted(notifier):
    """(recipient_id, kind) pairs passed to notifier.emit, in call order."""
    return [(c.kwargs["recipient_id"], c.kwargs["kind"]) for c in notifier.emit.await_args_list]
