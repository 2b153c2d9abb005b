from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from typing import Annotated, List, Mapping, Optional, Dict, Tuple
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType

from models.time_of_day import MINUTES_PER_DAY, format_time


class WeekDay(str, Enum):
    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"

    @classmethod
    def from_date(cls, value: date) -> "WeekDay":
        return list(cls)[value.weekday()]


ALL_DAYS: Tuple[WeekDay, ...] = tuple(WeekDay)

TimeOfDay = Annotated[int, Field(ge=0, lt=MINUTES_PER_DAY)]


class _Interval(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: WeekDay
    start: TimeOfDay
    end: TimeOfDay

    @model_validator(mode="after")
    def _check_order(self):
        if self.start >= self.end:
            raise ValueError(f"start ({self.start}) must be before end ({self.end})")
        return self

    @property
    def length(self) -> int:
        return self.end - self.start

    def describe(self) -> str:
        return f"{self.day.value} {format_time(self.start)}-{format_time(self.end)}"


class BusyInterval(_Interval):
    label: str = ""


class FreeInterval(_Interval):
    pass


class CandidateSlot(_Interval):
    pass


class WeeklySchedule(BaseModel):
    """
    Busy intervals per weekday, as produced by the timetable parser.

    Only days with at least one interval are present. Within a day intervals
    are ordered by start time. `warnings` lists skipped source lines and
    overlaps between intervals with different labels, which are kept as-is.
    The schedule is immutable: `days` is a read-only mapping.
    """
    model_config = ConfigDict(frozen=True)

    days: Mapping[WeekDay, Tuple[BusyInterval, ...]] = Field(default_factory=dict, validate_default=True)
    warnings: Tuple[str, ...] = ()

    @field_validator("days", mode="after")
    @classmethod
    def _freeze_days(cls, value):
        return MappingProxyType(dict(value))

    @field_serializer("days", mode="wrap")
    def _dump_days(self, value, handler):
        return handler(dict(value))

    def intervals_for(self, day: WeekDay) -> Tuple[BusyInterval, ...]:
        return self.days.get(day, ())

    def all_intervals(self) -> List[BusyInterval]:
        return [i for day in WeekDay for i in self.intervals_for(day)]


class ActivityWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: TimeOfDay
    end: TimeOfDay
    days: Tuple[WeekDay, ...] = ALL_DAYS

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.start >= self.end:
            raise ValueError("Activity window must start before it ends")
        return self


# --- API payloads ---

class ParseRequest(BaseModel):
    text: str


class SnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    instructor_id: str
    version: int
    raw_text: str
    created_at: datetime
    schedule: WeeklySchedule


class PublishSelection(BaseModel):
    candidate_slot: CandidateSlot
    calendar_date: date


class PublishRequest(BaseModel):
    classroom_id: str
    review_stage: str
    booking_deadline: date
    published_by: str
    selections: List[PublishSelection]


class BookableSlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    classroom_id: str
    review_stage: str
    calendar_date: date
    start: int
    end: int
    duration: int
    booking_deadline: date
    is_available: bool
    created_by: str


class PublishRejection(BaseModel):
    index: int
    reason: str


class PublishResponse(BaseModel):
    published: List[BookableSlotOut]
    rejected: List[PublishRejection] = []


class BookRequest(BaseModel):
    slot_id: int
    team_id: str
    booked_by: Optional[str] = None


class CancelRequest(BaseModel):
    cancelled_by: str
    retract: bool = False # Delete the slot instead of reopening it


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slot_id: int
    team_id: str
    created_by: Optional[str] = None
    created_at: datetime


class ClassroomSlotOut(BookableSlotOut):
    booking: Optional[BookingOut] = None


class IntegrityIssueOut(BaseModel):
    slot_id: int
    problem: str


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    actor: Optional[str] = None
    activity_type: str
    entity_id: Optional[str] = None
    details_json: Optional[Dict] = None
    created_at: Optional[datetime] = None
