import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from database import ActivityDB

logger = logging.getLogger(__name__)

SLOT_PUBLISHED = "slot_published"
SLOT_BOOKED = "slot_booked"
BOOKING_CANCELLED = "booking_cancelled"
SLOT_DELETED = "slot_deleted"


def record_activity(db: Session, activity_type: str, actor: Optional[str], entity_id: Any,
                    details: Optional[Dict[str, Any]] = None) -> ActivityDB:
    """
    Adds an activity row to the current transaction (caller commits).

    Activities are what the notification side reads to learn about bookings
    and cancellations; the engine itself sends nothing.
    """
    activity = ActivityDB(
        actor=actor,
        activity_type=activity_type,
        entity_id=str(entity_id),
        details_json=details or {},
    )
    db.add(activity)
    logger.debug("Activity %s by %s on %s", activity_type, actor, entity_id)
    return activity


def recent_activities(db: Session, limit: int = 50) -> List[ActivityDB]:
    return db.query(ActivityDB).order_by(ActivityDB.id.desc()).limit(limit).all()
