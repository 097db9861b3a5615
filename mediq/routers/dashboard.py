# mediq/routers/dashboard.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas, security, models
from ..database import get_db
from ..services import queue_service

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
    dependencies=[Depends(security.require_staff)],
)

# Staff accounts without a hospital (e.g. a seeded admin) see and change nothing
QUEUE_ENTRY_NOT_FOUND = {"success": False, "message": "Queue entry not found."}


@router.get("/queue", response_model=List[schemas.QueueItem])
def read_patient_queue(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(security.require_staff),
):
    """Triage queue of the signed-in user's hospital, most urgent first."""
    if current_user.hospital_id is None:
        return []
    return queue_service.get_patient_queue(db, {"hospitalId": current_user.hospital_id})


@router.get("/summaries/{summary_id}", response_model=Optional[schemas.SummaryDetails])
def read_summary_details(
    summary_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(security.require_staff),
):
    if current_user.hospital_id is None:
        return None
    return queue_service.get_summary_details(
        db, {"summaryId": summary_id}, hospital_id=current_user.hospital_id
    )


@router.patch("/queue/{queue_id}/status", response_model=schemas.StatusUpdateResult)
def change_queue_status(
    queue_id: int,
    update: schemas.StatusUpdateRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(security.require_staff),
):
    if current_user.hospital_id is None:
        return QUEUE_ENTRY_NOT_FOUND
    return queue_service.update_queue_status(
        db,
        {"queueId": queue_id, "status": update.status},
        hospital_id=current_user.hospital_id,
    )
