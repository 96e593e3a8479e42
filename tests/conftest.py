"""
Shared pytest fixtures.
"""

import uuid
from datetime import date
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lifehub import models, models_calendar, models_calendar_sync  # noqa: F401
from lifehub.database import Base
from tests.fakes import FakeProjectionStore, FakeRoadmapSource, FakeSession, FakeSettingsStore

USER_ID = "11111111-1111-4111-8111-111111111111"
PROJECT_ID = "22222222-2222-4222-8222-222222222222"
TRACK_ID = "33333333-3333-4333-8333-333333333333"
SUBTRACK_ID = "44444444-4444-4444-8444-444444444444"
OTHER_SUBTRACK_ID = "55555555-5555-4555-8555-555555555555"
HOUSEHOLD_ID = "66666666-6666-4666-8666-666666666666"
SPACE_ID = "77777777-7777-4777-8777-777777777777"
OTHER_SPACE_ID = "88888888-8888-4888-8888-888888888888"


def new_id() -> str:
    return str(uuid.uuid4())


def make_item(
    item_id: str | None = None,
    item_type: str = "event",
    start_date: date | None = date(2026, 3, 2),
    end_date: date | None = None,
    track_id: str = TRACK_ID,
    subtrack_id: str | None = None,
    title: str = "Roadmap event",
) -> SimpleNamespace:
    """Roadmap item double exposing the RoadmapItem columns the sync code reads."""
    return SimpleNamespace(
        id=item_id or new_id(),
        type=item_type,
        title=title,
        description=None,
        start_date=start_date,
        end_date=end_date,
        master_project_id=PROJECT_ID,
        track_id=track_id,
        subtrack_id=subtrack_id,
        item_metadata={},
    )


@pytest.fixture
def user():
    return SimpleNamespace(id=USER_ID, email="alex@example.com")


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def settings_store():
    return FakeSettingsStore()


@pytest.fixture
def roadmap():
    return FakeRoadmapSource(project_names={PROJECT_ID: "Launch"})


@pytest.fixture
def projections():
    return FakeProjectionStore(
        households={USER_ID: HOUSEHOLD_ID},
        shared_spaces={USER_ID: [SimpleNamespace(id=SPACE_ID, name="Family")]},
    )


@pytest.fixture
def db_session():
    """In-memory SQLite session with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
