from datetime import datetime, timezone
from sqlalchemy import (
    create_engine, Column, Integer, String, Text, JSON, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from settings import DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


class EngineConfigDB(Base):
    __tablename__ = "engine_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, index=True) # e.g. "activity_window"
    value_json = Column(JSON)


class AvailabilitySnapshotDB(Base):
    """One parsed version of an instructor's weekly availability text."""
    __tablename__ = "availability_snapshots"
    __table_args__ = (
        UniqueConstraint("instructor_id", "version", name="uq_snapshot_instructor_version"),
    )

    id = Column(Integer, primary_key=True, index=True)
    instructor_id = Column(String, nullable=False, index=True)
    version = Column(Integer, nullable=False)
    raw_text = Column(Text, nullable=False)
    schedule_json = Column(JSON, nullable=False) # WeeklySchedule.model_dump(mode="json")
    created_at = Column(DateTime, default=utcnow)


class BookableSlotDB(Base):
    __tablename__ = "slots"
    # Publishing the same classroom/stage/date/start twice is rejected here,
    # where it also holds under concurrent publishers.
    __table_args__ = (
        UniqueConstraint("classroom_id", "review_stage", "calendar_date", "start_minute",
                         name="uq_slot_classroom_stage_date_start"),
    )

    id = Column(Integer, primary_key=True, index=True)
    classroom_id = Column(String, nullable=False, index=True)
    review_stage = Column(String, nullable=False)
    calendar_date = Column(Date, nullable=False)
    start = Column("start_minute", Integer, nullable=False)
    end = Column("end_minute", Integer, nullable=False)
    duration = Column(Integer, nullable=False)
    booking_deadline = Column(Date, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    booking = relationship("BookingDB", back_populates="slot", uselist=False)


class BookingDB(Base):
    __tablename__ = "bookings"
    # One booking per team and (classroom, review stage), copied from the slot.
    __table_args__ = (
        UniqueConstraint("team_id", "classroom_id", "review_stage", name="uq_booking_team_stage"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # Final arbiter for double booking: at most one booking row per slot.
    slot_id = Column(Integer, ForeignKey("slots.id"), nullable=False, unique=True)
    team_id = Column(String, nullable=False, index=True)
    classroom_id = Column(String, nullable=False)
    review_stage = Column(String, nullable=False)
    created_by = Column(String)
    created_at = Column(DateTime, default=utcnow)

    slot = relationship("BookableSlotDB", back_populates="booking")


class ActivityDB(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    actor = Column(String)
    activity_type = Column(String, nullable=False, index=True) # e.g. "slot_booked"
    entity_id = Column(String)
    details_json = Column(JSON)
    created_at = Column(DateTime, default=utcnow)


def init_db():
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
