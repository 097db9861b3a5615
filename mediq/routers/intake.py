# mediq/routers/intake.py
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import models, schemas, security
from ..database import get_db
from ..services import chat_script, intake_service

import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Intake"])


@router.get("/chat/script", response_model=schemas.ChatScriptResponse)
def read_chat_script():
    """Greeting and prompts, so a client can run the conversation without a round-trip per message."""
    return schemas.ChatScriptResponse(
        greeting=chat_script.GREETING,
        script=list(chat_script.SCRIPT),
        reply_delay_seconds=chat_script.BOT_REPLY_DELAY_SECONDS,
    )


@router.post("/intake", status_code=status.HTTP_201_CREATED, response_model=schemas.IntakeResult)
def submit_intake(
    submission: schemas.IntakeSubmission,
    db: Session = Depends(get_db),
    patient: Optional[models.User] = Depends(security.get_optional_patient),
):
    """Queue a finished intake. A signed-in patient is linked to it; anyone else files it anonymously."""
    try:
        return intake_service.submit_intake(db, submission, patient_id=patient.id if patient else None)
    except intake_service.IntakeReferenceError as e:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(e)})
    except Exception:
        logger.error("[INTAKE_POST] intake submission failed", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal Server Error"},
        )
