import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from database import BookableSlotDB, BookingDB
from services.activity import BOOKING_CANCELLED, SLOT_BOOKED, SLOT_DELETED, record_activity
from services.errors import (
    BookingClosedError, DuplicateStageBookingError, SlotNotFoundError, SlotUnavailableError
)

logger = logging.getLogger(__name__)


@dataclass
class CancelResult:
    booking_id: int
    slot_id: int
    team_id: str
    slot_deleted: bool


class BookingCoordinator:
    """
    Owns every write to slots and bookings after publication.

    A slot is Available until exactly one team books it. The read-side checks
    in `book` only fail fast; correctness under concurrent requests comes from
    the conditional availability update and the unique constraints on
    `bookings` (one row per slot, one row per team and review stage).
    Conflicts are expected outcomes, so they are logged at INFO.
    """
    def __init__(self, db: Session):
        self.db = db

    def book(self, slot_id: int, team_id: str, booked_by: Optional[str] = None,
             today: Optional[date] = None) -> BookingDB:
        """
        Claims a slot for a team.

        Raises:
            SlotNotFoundError: Unknown slot id.
            SlotUnavailableError: Already booked, including losing a race for it.
            BookingClosedError: The slot's booking deadline has passed.
            DuplicateStageBookingError: The team already booked this classroom's review stage.
        """
        slot = self._fresh_slot(slot_id)
        if slot is None:
            raise SlotNotFoundError(f"Slot {slot_id} not found", details={"slot_id": slot_id})
        if not slot.is_available:
            raise self._unavailable(slot_id, team_id)

        today = today or date.today()
        if today > slot.booking_deadline:
            raise BookingClosedError(
                f"Booking for slot {slot_id} closed on {slot.booking_deadline.isoformat()}",
                details={"slot_id": slot_id, "booking_deadline": slot.booking_deadline.isoformat()},
            )

        if self._stage_booking(team_id, slot.classroom_id, slot.review_stage):
            raise self._duplicate_stage(team_id, slot.classroom_id, slot.review_stage)

        return self._claim(slot, team_id, booked_by)

    def _claim(self, slot: BookableSlotDB, team_id: str, booked_by: Optional[str]) -> BookingDB:
        # Flip availability and insert the booking in one transaction.
        booking = None
        try:
            updated = (
                self.db.query(BookableSlotDB)
                .filter(BookableSlotDB.id == slot.id, BookableSlotDB.is_available.is_(True))
                .update({BookableSlotDB.is_available: False}, synchronize_session=False)
            )
            if updated == 1:
                booking = BookingDB(
                    slot_id=slot.id,
                    team_id=team_id,
                    classroom_id=slot.classroom_id,
                    review_stage=slot.review_stage,
                    created_by=booked_by,
                )
                self.db.add(booking)
                record_activity(self.db, SLOT_BOOKED, booked_by or team_id, slot.id, {
                    "team_id": team_id,
                    "classroom_id": slot.classroom_id,
                    "review_stage": slot.review_stage,
                    "calendar_date": slot.calendar_date.isoformat(),
                })
                self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if self._stage_booking(team_id, slot.classroom_id, slot.review_stage):
                raise self._duplicate_stage(team_id, slot.classroom_id, slot.review_stage) from e
            raise self._unavailable(slot.id, team_id) from e

        if booking is None:
            self.db.rollback()
            raise self._unavailable(slot.id, team_id)

        self.db.refresh(booking)
        logger.info("Team %s booked slot %s", team_id, slot.id)
        return booking

    def cancel(self, booking_id: int, cancelled_by: str, retract: bool = False) -> Optional[CancelResult]:
        """
        Removes a booking and reopens its slot, or deletes the slot too when
        `retract` is set. Cancelling an unknown or already cancelled booking
        is a no-op and returns None.
        """
        booking = self.db.get(BookingDB, booking_id)
        if booking is None:
            logger.info("Cancel of booking %s ignored, no such booking", booking_id)
            return None

        result = CancelResult(booking_id=booking.id, slot_id=booking.slot_id,
                              team_id=booking.team_id, slot_deleted=retract)

        deleted = (
            self.db.query(BookingDB)
            .filter(BookingDB.id == booking_id)
            .delete()
        )
        if deleted == 0:
            # Cancelled concurrently
            self.db.rollback()
            return None

        slot_rows = self.db.query(BookableSlotDB).filter(BookableSlotDB.id == result.slot_id)
        if retract:
            slot_rows.delete()
        else:
            slot_rows.update({BookableSlotDB.is_available: True})
        record_activity(self.db, BOOKING_CANCELLED, cancelled_by, booking_id, {
            "slot_id": result.slot_id,
            "team_id": result.team_id,
            "slot_deleted": retract,
        })
        self.db.commit()

        logger.info("Booking %s cancelled by %s (slot %s %s)", booking_id, cancelled_by,
                    result.slot_id, "deleted" if retract else "reopened")
        return result

    def delete_slot(self, slot_id: int, deleted_by: str) -> Optional[int]:
        """
        Retracts a published slot. A booking on it is removed first.

        Returns:
            int: Id of the removed booking, if the slot was booked.
        """
        slot = self.db.get(BookableSlotDB, slot_id)
        if slot is None:
            raise SlotNotFoundError(f"Slot {slot_id} not found", details={"slot_id": slot_id})

        classroom_id, review_stage = slot.classroom_id, slot.review_stage
        booking = self.db.query(BookingDB).filter(BookingDB.slot_id == slot_id).first()
        removed_booking_id = booking.id if booking else None

        self.db.query(BookingDB).filter(BookingDB.slot_id == slot_id).delete()
        self.db.query(BookableSlotDB).filter(BookableSlotDB.id == slot_id).delete()
        record_activity(self.db, SLOT_DELETED, deleted_by, slot_id, {
            "classroom_id": classroom_id,
            "review_stage": review_stage,
            "booking_id": removed_booking_id,
        })
        self.db.commit()
        logger.info("Slot %s deleted by %s", slot_id, deleted_by)
        return removed_booking_id

    # --- Queries ---

    def available_slots(self, classroom_id: str, review_stage: Optional[str] = None) -> List[BookableSlotDB]:
        query = self.db.query(BookableSlotDB).filter(
            BookableSlotDB.classroom_id == classroom_id,
            BookableSlotDB.is_available.is_(True),
        )
        if review_stage:
            query = query.filter(BookableSlotDB.review_stage == review_stage)
        return query.order_by(BookableSlotDB.calendar_date, BookableSlotDB.start).all()

    def classroom_slots(self, classroom_id: str) -> List[BookableSlotDB]:
        return (
            self.db.query(BookableSlotDB)
            .options(joinedload(BookableSlotDB.booking))
            .filter(BookableSlotDB.classroom_id == classroom_id)
            .order_by(BookableSlotDB.calendar_date, BookableSlotDB.start)
            .all()
        )

    def team_bookings(self, team_id: str) -> List[BookingDB]:
        return self.db.query(BookingDB).filter(BookingDB.team_id == team_id).order_by(BookingDB.id).all()

    # --- Helpers ---

    def _fresh_slot(self, slot_id: int) -> Optional[BookableSlotDB]:
        # Bypass the identity map so an earlier read in this session is not trusted.
        return (
            self.db.query(BookableSlotDB)
            .filter(BookableSlotDB.id == slot_id)
            .populate_existing()
            .first()
        )

    def _stage_booking(self, team_id: str, classroom_id: str, review_stage: str) -> Optional[BookingDB]:
        return (
            self.db.query(BookingDB)
            .filter(
                BookingDB.team_id == team_id,
                BookingDB.classroom_id == classroom_id,
                BookingDB.review_stage == review_stage,
            )
            .first()
        )

    def _unavailable(self, slot_id: int, team_id: str) -> SlotUnavailableError:
        logger.info("Slot %s unavailable for team %s", slot_id, team_id)
        return SlotUnavailableError(f"Slot {slot_id} is no longer available", details={"slot_id": slot_id})

    def _duplicate_stage(self, team_id: str, classroom_id: str, review_stage: str) -> DuplicateStageBookingError:
        logger.info("Team %s already booked %s/%s", team_id, classroom_id, review_stage)
        return DuplicateStageBookingError(
            f"Team {team_id} already has a booking for {review_stage} in classroom {classroom_id}",
            details={"team_id": team_id, "classroom_id": classroom_id, "review_stage": review_stage},
        )
