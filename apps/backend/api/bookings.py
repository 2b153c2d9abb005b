from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from models.schemas import BookRequest, BookingOut, CancelRequest
from services.booking.coordinator import BookingCoordinator

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingOut)
async def book_slot(req: BookRequest, db: Session = Depends(get_db)):
    """
    Books a slot for a team.

    Conflicts (slot already taken, team already booked this review stage,
    deadline passed) return 409 so the client can refresh and offer
    another slot.
    """
    return BookingCoordinator(db).book(req.slot_id, req.team_id, booked_by=req.booked_by)


@router.post("/{booking_id}/cancel")
async def cancel_booking(booking_id: int, req: CancelRequest, db: Session = Depends(get_db)):
    result = BookingCoordinator(db).cancel(booking_id, req.cancelled_by, retract=req.retract)
    if result is None:
        return {"status": "noop", "booking_id": booking_id}
    return {
        "status": "cancelled",
        "booking_id": booking_id,
        "slot_id": result.slot_id,
        "slot_deleted": result.slot_deleted,
    }


@router.get("/team/{team_id}", response_model=List[BookingOut])
async def list_team_bookings(team_id: str, db: Session = Depends(get_db)):
    return BookingCoordinator(db).team_bookings(team_id)
