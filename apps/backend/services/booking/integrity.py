import logging
from dataclasses import dataclass
from typing import List

from sqlalchemy.orm import Session

from database import BookableSlotDB, BookingDB

logger = logging.getLogger(__name__)

UNAVAILABLE_WITHOUT_BOOKING = "unavailable_without_booking"
BOOKED_BUT_AVAILABLE = "booked_but_available"


@dataclass
class IntegrityIssue:
    slot_id: int
    problem: str


def check_integrity(db: Session) -> List[IntegrityIssue]:
    """
    Finds slots whose availability flag disagrees with their booking row.

    Every booking write pairs the flag with the row in one transaction, so
    any hit here points at a bug or a manual edit. Issues are reported and
    logged, never repaired: fixing them silently would hide the cause.
    """
    issues = []

    orphaned = (
        db.query(BookableSlotDB.id)
        .outerjoin(BookingDB, BookingDB.slot_id == BookableSlotDB.id)
        .filter(BookableSlotDB.is_available.is_(False), BookingDB.id.is_(None))
        .order_by(BookableSlotDB.id)
        .all()
    )
    issues.extend(IntegrityIssue(slot_id=row.id, problem=UNAVAILABLE_WITHOUT_BOOKING) for row in orphaned)

    double = (
        db.query(BookableSlotDB.id)
        .join(BookingDB, BookingDB.slot_id == BookableSlotDB.id)
        .filter(BookableSlotDB.is_available.is_(True))
        .order_by(BookableSlotDB.id)
        .all()
    )
    issues.extend(IntegrityIssue(slot_id=row.id, problem=BOOKED_BUT_AVAILABLE) for row in double)

    for issue in issues:
        logger.error("Slot/booking integrity violation: slot %s %s", issue.slot_id, issue.problem)
    return issues
