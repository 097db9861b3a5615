# mediq/services/intake_service.py
import logging
import time
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from .chat_script import ChatSession

logger = logging.getLogger(__name__)

RED_FLAG_SYMPTOMS = (
    "chest pain", "bleeding", "unconscious", "stroke", "seizure",
    "not breathing", "difficulty breathing", "shortness of breath",
)


class IntakeReferenceError(crud.CRUDError):
    """The hospital an intake points at does not exist."""


def classify_symptoms(symptoms: Optional[str]) -> models.TriageCode:
    if symptoms and any(flag in symptoms.lower() for flag in RED_FLAG_SYMPTOMS):
        return models.TriageCode.emergency
    return models.TriageCode.standard


def _answer(answers: List[str], position: int) -> Optional[str]:
    return answers[position].strip() if len(answers) > position else None


def submit_intake(db: Session, submission: schemas.IntakeSubmission,
                  patient_id: Optional[int] = None) -> schemas.IntakeResult:
    """Store a finished intake conversation and place the patient in the queue.

    The transcript is rebuilt by replaying the patient's answers through the
    script, so stored bot lines always match what the assistant said.
    Chats, summary and queue entry are committed together. The triage code
    always comes from the reported symptoms.
    """
    if crud.get_hospital(db, submission.hospital_id) is None:
        raise IntakeReferenceError(f"Hospital {submission.hospital_id} not found")

    session = ChatSession()
    for answer in submission.answers:
        session.send(answer)

    answers = session.user_messages
    symptoms = _answer(answers, 3)
    triage_code = classify_symptoms(symptoms)
    now = int(time.time())

    try:
        for sequence, message in enumerate(session.messages):
            db.add(models.ChatMessage(
                conversation_id=session.conversation_id,
                text=message.text,
                sender=message.sender,
                created_at=now,
                sequence=sequence,
            ))

        summary = models.Summary(
            conversation_id=session.conversation_id,
            patient_id=patient_id,
            triage_code=triage_code.value,
            full_name=_answer(answers, 1),
            clinic=_answer(answers, 2),
            symptoms=symptoms,
            recent_visit=_answer(answers, 4),
            notes="\n".join(answers[:1] + answers[5:]) or None,
            created_at=now,
        )
        db.add(summary)
        db.flush()

        entry = models.QueueEntry(
            hospital_id=submission.hospital_id,
            patient_id=patient_id,
            summary_id=summary.id,
            priority=triage_code.priority,
            status=models.QueueStatus.waiting,
            created_at=now,
        )
        db.add(entry)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise crud.CRUDError(f"Database error: {str(e)}")

    logger.info(
        f"Queued intake {session.conversation_id} for hospital {submission.hospital_id} "
        f"(queue ID {entry.id}, triage {triage_code.value})"
    )
    return schemas.IntakeResult(
        conversation_id=session.conversation_id,
        summary_id=summary.id,
        queue_id=entry.id,
        priority=entry.priority,
        triage_code=triage_code,
    )
