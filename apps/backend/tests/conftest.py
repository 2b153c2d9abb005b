import pytest
import sys
import os
from datetime import date, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure backend path is in sys.path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from database import Base, BookableSlotDB, get_db
from main import app

# A Monday; publishing and booking tests pass it as "today"
TODAY = date(2026, 3, 2)
NEXT_MONDAY = TODAY + timedelta(days=7)


@pytest.fixture
def engine():
    """Fresh in-memory DB per test, one shared connection (StaticPool)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def session_factory(tmp_path):
    """File-backed DB so separate sessions (and threads) get separate connections."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'bookings.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def client(db_session):
    """Test client with overridden dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    yield TestClient(app)
    del app.dependency_overrides[get_db]


def add_slot(db, classroom_id="C1", review_stage="Review 1", calendar_date=NEXT_MONDAY,
             start=9 * 60, duration=20, booking_deadline=None, is_available=True):
    slot = BookableSlotDB(
        classroom_id=classroom_id,
        review_stage=review_stage,
        calendar_date=calendar_date,
        start=start,
        end=start + duration,
        duration=duration,
        booking_deadline=booking_deadline or calendar_date,
        is_available=is_available,
        created_by="prof",
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


@pytest.fixture
def make_slot(db_session):
    def _make(**kwargs):
        return add_slot(db_session, **kwargs)
    return _make
