from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db, AvailabilitySnapshotDB
from models.schemas import CandidateSlot, FreeInterval, ParseRequest, SnapshotOut, WeeklySchedule
from services.availability import AvailabilityService, load_window
from services.free_slots import derive_free
from services.partitioner import partition
from services.text_parser import TimetableParser
import settings

router = APIRouter(prefix="/availability", tags=["Availability"])


def _snapshot_out(snapshot: AvailabilitySnapshotDB) -> SnapshotOut:
    return SnapshotOut(
        id=snapshot.id,
        instructor_id=snapshot.instructor_id,
        version=snapshot.version,
        raw_text=snapshot.raw_text,
        created_at=snapshot.created_at,
        schedule=AvailabilityService.schedule_of(snapshot),
    )


def _pick_snapshot(service: AvailabilityService, instructor_id: str, version: Optional[int]):
    return service.get(instructor_id, version) if version is not None else service.latest(instructor_id)


@router.post("/parse", response_model=WeeklySchedule)
async def parse_availability(payload: ParseRequest):
    """
    Parses availability text without storing it (preview before saving).
    Overlaps between differently labelled entries come back in `warnings`.
    """
    return TimetableParser().parse(payload.text)


@router.post("/instructors/{instructor_id}", response_model=SnapshotOut)
async def save_availability(instructor_id: str, payload: ParseRequest, db: Session = Depends(get_db)):
    snapshot = AvailabilityService(db).save(instructor_id, payload.text)
    return _snapshot_out(snapshot)


@router.get("/instructors/{instructor_id}", response_model=SnapshotOut)
async def get_availability(instructor_id: str, version: Optional[int] = None, db: Session = Depends(get_db)):
    service = AvailabilityService(db)
    return _snapshot_out(_pick_snapshot(service, instructor_id, version))


@router.get("/instructors/{instructor_id}/free", response_model=List[FreeInterval])
async def get_free_time(instructor_id: str, version: Optional[int] = None, db: Session = Depends(get_db)):
    """Free intervals of the instructor's week inside the configured activity window."""
    service = AvailabilityService(db)
    schedule = service.schedule_of(_pick_snapshot(service, instructor_id, version))
    return derive_free(schedule, load_window(db))


@router.get("/instructors/{instructor_id}/candidates", response_model=List[CandidateSlot])
async def get_candidate_slots(
    instructor_id: str,
    duration: int = Query(settings.DEFAULT_SLOT_DURATION),
    version: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """
    Candidate slots of `duration` minutes, ready for date selection and publishing.
    """
    service = AvailabilityService(db)
    schedule = service.schedule_of(_pick_snapshot(service, instructor_id, version))
    return partition(derive_free(schedule, load_window(db)), duration)
