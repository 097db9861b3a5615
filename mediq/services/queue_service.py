# mediq/services/queue_service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy import exists, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas

logger = logging.getLogger(__name__)

UNKNOWN_PATIENT = "Unknown Patient"
DATE_FORMAT = "%Y-%m-%d %H:%M"


class InvalidInputError(ValueError):
    """Raised when a boundary operation receives input of the wrong shape."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


def field_errors_from(error: ValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for item in error.errors():
        loc = [str(part) for part in item.get("loc", ()) if part != "body"]
        key = loc[0] if loc else "_root"
        errors.setdefault(key, []).append(item.get("msg", "Invalid value"))
    return errors


def _parse(model: type[BaseModel], data: Any, operation: str) -> BaseModel:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid input for {operation}.", field_errors_from(e))


def format_timestamp(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds).strftime(DATE_FORMAT)


def get_patient_queue(db: Session, data: Any) -> List[Dict[str, Any]]:
    """Queue of one hospital, ordered by priority then arrival (FIFO)."""
    params = _parse(schemas.GetQueueInput, data, "getting queue")

    rows = (
        db.query(models.QueueEntry, models.User.full_name, models.Summary.triage_code)
        .outerjoin(models.User, models.QueueEntry.patient_id == models.User.id)
        .outerjoin(models.Summary, models.QueueEntry.summary_id == models.Summary.id)
        .filter(models.QueueEntry.hospital_id == params.hospital_id)
        .order_by(
            models.QueueEntry.priority.asc(),
            models.QueueEntry.created_at.asc(),
            models.QueueEntry.id.asc(),
        )
        .all()
    )

    return [
        schemas.QueueItem(
            id=str(entry.id),
            patient_name=patient_name or UNKNOWN_PATIENT,
            date=format_timestamp(entry.created_at),
            status=entry.status,
            summary_id=entry.summary_id,
            triage_code=triage_code,
        ).model_dump(mode="json", by_alias=True)
        for entry, patient_name, triage_code in rows
    ]


def get_summary_details(db: Session, data: Any, hospital_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """A summary with its full transcript, or None when no such summary exists.

    With ``hospital_id`` only summaries queued at that hospital are found.
    """
    params = _parse(schemas.GetSummaryDetailsInput, data, "getting summary details")

    query = db.query(models.Summary).filter(models.Summary.id == params.summary_id)
    if hospital_id is not None:
        query = query.filter(
            exists().where(
                models.QueueEntry.summary_id == models.Summary.id,
                models.QueueEntry.hospital_id == hospital_id,
            )
        )
    summary = query.first()
    if summary is None:
        return None

    conversation = (
        db.query(models.ChatMessage)
        .filter(models.ChatMessage.conversation_id == summary.conversation_id)
        .order_by(
            models.ChatMessage.created_at.asc(),
            models.ChatMessage.sequence.asc(),
            models.ChatMessage.id.asc(),
        )
        .all()
    )

    details = schemas.SummaryDetails(
        summary=schemas.SummaryResponse(
            id=summary.id,
            conversation_id=summary.conversation_id,
            patient_id=summary.patient_id,
            patient_name=summary.patient.full_name if summary.patient else None,
            triage_code=summary.triage_code,
            full_name=summary.full_name,
            clinic=summary.clinic,
            symptoms=summary.symptoms,
            recent_visit=summary.recent_visit,
            notes=summary.notes,
            created_at=summary.created_at,
        ),
        conversation=[schemas.ChatMessageResponse.model_validate(message) for message in conversation],
    )
    return details.model_dump(mode="json", by_alias=True)


def update_queue_status(db: Session, data: Any, hospital_id: Optional[int] = None) -> Dict[str, Any]:
    """Set the status of one queue entry. Store failures come back as a result, not an exception."""
    params = _parse(schemas.UpdateQueueStatusInput, data, "updating queue status")

    statement = update(models.QueueEntry).where(models.QueueEntry.id == params.queue_id)
    if hospital_id is not None:
        statement = statement.where(models.QueueEntry.hospital_id == hospital_id)
    statement = statement.values(status=params.status)

    try:
        result = db.execute(statement)
        if result.rowcount == 0:
            db.rollback()
            return {"success": False, "message": "Queue entry not found."}
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update queue status for entry {params.queue_id}: {e}")
        return {"success": False, "message": "Failed to update status."}

    return {"success": True, "message": f"Status updated to {params.status.value}"}
