import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import AvailabilitySnapshotDB, EngineConfigDB
from models.schemas import ActivityWindow, WeekDay, WeeklySchedule
from models.time_of_day import parse_time
from services.errors import SnapshotNotFoundError, SnapshotVersionConflictError, ValidationError
from services.text_parser import TimetableParser
import settings

logger = logging.getLogger(__name__)

WINDOW_CONFIG_KEY = "activity_window"


class AvailabilityService:
    """
    Versioned weekly availability per instructor.

    Every save stores the raw text next to its parsed schedule under the next
    version number, so published slots can be traced back to the exact
    timetable they were derived from.
    """
    def __init__(self, db: Session, parser: Optional[TimetableParser] = None):
        self.db = db
        self.parser = parser or TimetableParser()

    def save(self, instructor_id: str, raw_text: str) -> AvailabilitySnapshotDB:
        schedule = self.parser.parse(raw_text) # ParseError propagates, nothing stored

        snapshot = AvailabilitySnapshotDB(
            instructor_id=instructor_id,
            version=self._next_version(instructor_id),
            raw_text=raw_text,
            schedule_json=schedule.model_dump(mode="json"),
        )
        self.db.add(snapshot)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Another save took this version number first
            self.db.rollback()
            logger.info("Availability v%d for instructor %s lost a concurrent save", snapshot.version, instructor_id)
            raise SnapshotVersionConflictError(
                f"Availability for {instructor_id} changed concurrently, retry",
                details={"instructor_id": instructor_id},
            ) from e
        self.db.refresh(snapshot)

        logger.info("Stored availability v%d for instructor %s (%d busy intervals, %d warnings)",
                    snapshot.version, instructor_id, len(schedule.all_intervals()), len(schedule.warnings))
        return snapshot

    def _next_version(self, instructor_id: str) -> int:
        current = (
            self.db.query(func.max(AvailabilitySnapshotDB.version))
            .filter(AvailabilitySnapshotDB.instructor_id == instructor_id)
            .scalar()
        )
        return (current or 0) + 1

    def latest(self, instructor_id: str) -> AvailabilitySnapshotDB:
        snapshot = (
            self.db.query(AvailabilitySnapshotDB)
            .filter(AvailabilitySnapshotDB.instructor_id == instructor_id)
            .order_by(AvailabilitySnapshotDB.version.desc())
            .first()
        )
        if not snapshot:
            raise SnapshotNotFoundError(f"No availability stored for instructor {instructor_id}",
                                        details={"instructor_id": instructor_id})
        return snapshot

    def get(self, instructor_id: str, version: int) -> AvailabilitySnapshotDB:
        snapshot = (
            self.db.query(AvailabilitySnapshotDB)
            .filter(AvailabilitySnapshotDB.instructor_id == instructor_id,
                    AvailabilitySnapshotDB.version == version)
            .first()
        )
        if not snapshot:
            raise SnapshotNotFoundError(f"No availability v{version} for instructor {instructor_id}",
                                        details={"instructor_id": instructor_id, "version": version})
        return snapshot

    @staticmethod
    def schedule_of(snapshot: AvailabilitySnapshotDB) -> WeeklySchedule:
        return WeeklySchedule.model_validate(snapshot.schedule_json)


def default_window() -> ActivityWindow:
    return ActivityWindow(
        start=parse_time(settings.ACTIVITY_WINDOW_START),
        end=parse_time(settings.ACTIVITY_WINDOW_END),
        days=tuple(WeekDay(d) for d in settings.ACTIVE_DAYS),
    )


def load_window(db: Session) -> ActivityWindow:
    """
    Activity window from the config table, falling back to the environment.

    Stored form: {"start": "08:00", "end": "18:00", "days": ["MON", ...]}
    """
    item = db.query(EngineConfigDB).filter(EngineConfigDB.key == WINDOW_CONFIG_KEY).first()
    if not item or not item.value_json:
        return default_window()

    value = item.value_json
    if not isinstance(value, dict):
        raise ValidationError(f"Invalid {WINDOW_CONFIG_KEY} configuration: expected an object")
    fallback = default_window()
    try:
        return ActivityWindow(
            start=parse_time(value["start"]) if "start" in value else fallback.start,
            end=parse_time(value["end"]) if "end" in value else fallback.end,
            days=tuple(WeekDay(d.upper()) for d in value.get("days", [d.value for d in fallback.days])),
        )
    except (ValueError, TypeError, AttributeError) as e:
        raise ValidationError(f"Invalid {WINDOW_CONFIG_KEY} configuration: {e}") from e
