import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import BookableSlotDB
from models.schemas import PublishRejection, PublishSelection, WeekDay
from models.time_of_day import format_time
from services.activity import SLOT_PUBLISHED, record_activity
from services.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class PublishResult:
    published: List[BookableSlotDB] = field(default_factory=list)
    rejected: List[PublishRejection] = field(default_factory=list)


class SlotPublisher:
    """
    Turns selected candidate slots into bookable slot rows.

    Items are independent: each one is validated and committed on its own,
    together with its activity row, so one bad or duplicate selection does
    not block the rest of the batch.
    """
    def __init__(self, db: Session):
        self.db = db

    def publish(self, selections: Sequence[PublishSelection], classroom_id: str, review_stage: str,
                booking_deadline: date, published_by: str, today: Optional[date] = None) -> PublishResult:
        """
        Args:
            selections: (candidate slot, calendar date) pairs chosen by the instructor.
            booking_deadline: Last day teams may book. Must not be in the past.
            today: Reference date for the deadline check (defaults to date.today()).

        Raises:
            ValidationError: If the booking deadline is already past. Nothing is written.
        """
        today = today or date.today()
        if booking_deadline < today:
            raise ValidationError(
                f"Booking deadline {booking_deadline.isoformat()} is in the past",
                details={"booking_deadline": booking_deadline.isoformat(), "today": today.isoformat()},
            )

        result = PublishResult()
        for index, selection in enumerate(selections):
            reason = self._check_selection(selection)
            if reason:
                result.rejected.append(PublishRejection(index=index, reason=reason))
                continue

            candidate = selection.candidate_slot
            slot = BookableSlotDB(
                classroom_id=classroom_id,
                review_stage=review_stage,
                calendar_date=selection.calendar_date,
                start=candidate.start,
                end=candidate.end,
                duration=candidate.end - candidate.start,
                booking_deadline=booking_deadline,
                is_available=True,
                created_by=published_by,
            )
            self.db.add(slot)
            try:
                self.db.flush()
                # Slot and its activity commit together
                record_activity(self.db, SLOT_PUBLISHED, published_by, slot.id, {
                    "classroom_id": classroom_id,
                    "review_stage": review_stage,
                    "calendar_date": selection.calendar_date.isoformat(),
                    "start": format_time(candidate.start),
                    "booking_deadline": booking_deadline.isoformat(),
                })
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                result.rejected.append(PublishRejection(
                    index=index,
                    reason=(f"Slot {selection.calendar_date.isoformat()} {format_time(candidate.start)} "
                            f"is already published for {classroom_id}/{review_stage}"),
                ))
                continue
            result.published.append(slot)

        logger.info(
            "Published %d slot(s) for classroom %s stage %s (%d rejected)",
            len(result.published), classroom_id, review_stage, len(result.rejected),
        )
        return result

    def _check_selection(self, selection: PublishSelection) -> Optional[str]:
        actual = WeekDay.from_date(selection.calendar_date)
        expected = selection.candidate_slot.day
        if actual != expected:
            return (f"{selection.calendar_date.isoformat()} is a {actual.value}, "
                    f"but the slot is for {expected.value}")
        return None
