from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from models.schemas import (
    ActivityOut, BookableSlotOut, ClassroomSlotOut, IntegrityIssueOut, PublishRequest, PublishResponse
)
from services.activity import recent_activities
from services.booking.coordinator import BookingCoordinator
from services.booking.integrity import check_integrity
from services.publisher import SlotPublisher

router = APIRouter(prefix="/slots", tags=["Slots"])


@router.post("/publish", response_model=PublishResponse)
async def publish_slots(req: PublishRequest, db: Session = Depends(get_db)):
    """
    Publishes the selected candidate slots on concrete dates.

    Processing:
    - Rejects the whole batch if the booking deadline is already past.
    - Rejects single items whose date falls on another weekday than the slot,
      or that duplicate an already published slot. The rest are stored.
    """
    result = SlotPublisher(db).publish(
        req.selections,
        classroom_id=req.classroom_id,
        review_stage=req.review_stage,
        booking_deadline=req.booking_deadline,
        published_by=req.published_by,
    )
    return PublishResponse(
        published=[BookableSlotOut.model_validate(s) for s in result.published],
        rejected=result.rejected,
    )


@router.get("/available/{classroom_id}", response_model=List[BookableSlotOut])
async def list_available_slots(classroom_id: str, review_stage: Optional[str] = None, db: Session = Depends(get_db)):
    return BookingCoordinator(db).available_slots(classroom_id, review_stage)


@router.get("/classroom/{classroom_id}", response_model=List[ClassroomSlotOut])
async def list_classroom_slots(classroom_id: str, db: Session = Depends(get_db)):
    """All slots of a classroom with their booking, for the instructor's overview."""
    return BookingCoordinator(db).classroom_slots(classroom_id)


@router.get("/integrity", response_model=List[IntegrityIssueOut])
async def integrity_report(db: Session = Depends(get_db)):
    return [IntegrityIssueOut(slot_id=i.slot_id, problem=i.problem) for i in check_integrity(db)]


@router.get("/activity", response_model=List[ActivityOut])
async def activity_feed(limit: int = 50, db: Session = Depends(get_db)):
    """Newest first. Read by the notification side."""
    return recent_activities(db, limit)


@router.delete("/{slot_id}")
async def delete_slot(slot_id: int, deleted_by: str, db: Session = Depends(get_db)):
    removed_booking_id = BookingCoordinator(db).delete_slot(slot_id, deleted_by)
    return {"status": "deleted", "slot_id": slot_id, "removed_booking_id": removed_booking_id}
