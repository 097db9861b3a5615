# mediq/schemas.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictInt, field_validator

from .models import MessageSender, QueueStatus, TriageCode, UserRole


# --- Base Schemas ---
class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# --- Auth Schemas ---
class RegisterRequest(BaseSchema):
    full_name: str = Field(..., alias="fullName", min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)
    hospital_name: str = Field(..., alias="hospitalName", min_length=2)

    @field_validator("full_name", "hospital_name", mode="before")
    @classmethod
    def strip_names(cls, v):
        return v.strip() if isinstance(v, str) else v


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str


class UserResponse(BaseSchema):
    """Public view of a user; never carries the password hash."""
    id: int
    full_name: str = Field(..., alias="fullName")
    email: EmailStr
    role: UserRole
    hospital_id: Optional[int] = Field(None, alias="hospitalId")


class LoginResponse(BaseSchema):
    message: str
    user: UserResponse


class MessageResponse(BaseSchema):
    message: str


class TokenClaims(BaseSchema):
    id: int
    email: str
    role: UserRole


# --- Queue / Dashboard Schemas ---
class GetQueueInput(BaseSchema):
    hospital_id: StrictInt = Field(..., alias="hospitalId")


class GetSummaryDetailsInput(BaseSchema):
    summary_id: StrictInt = Field(..., alias="summaryId")


class UpdateQueueStatusInput(BaseSchema):
    queue_id: StrictInt = Field(..., alias="queueId")
    status: QueueStatus


class StatusUpdateRequest(BaseSchema):
    status: QueueStatus


class QueueItem(BaseSchema):
    id: str
    patient_name: str = Field(..., alias="patientName")
    date: str
    status: QueueStatus
    summary_id: Optional[int] = Field(None, alias="summaryId")
    triage_code: Optional[str] = Field(None, alias="triageCode")


class ChatMessageResponse(BaseSchema):
    id: int
    conversation_id: str = Field(..., alias="conversationId")
    text: str
    sender: MessageSender
    created_at: int = Field(..., alias="createdAt")


class SummaryResponse(BaseSchema):
    id: int
    conversation_id: str = Field(..., alias="conversationId")
    patient_id: Optional[int] = Field(None, alias="patientId")
    patient_name: Optional[str] = Field(None, alias="patientName")
    triage_code: Optional[str] = Field(None, alias="triageCode")
    full_name: Optional[str] = Field(None, alias="fullName")
    clinic: Optional[str] = None
    symptoms: Optional[str] = None
    recent_visit: Optional[str] = Field(None, alias="recentVisit")
    notes: Optional[str] = None
    created_at: int = Field(..., alias="createdAt")


class SummaryDetails(BaseSchema):
    summary: SummaryResponse
    conversation: List[ChatMessageResponse]


class StatusUpdateResult(BaseSchema):
    success: bool
    message: str


# --- Chat / Intake Schemas ---
class ChatScriptResponse(BaseSchema):
    greeting: str
    script: List[str]
    reply_delay_seconds: float = Field(..., alias="replyDelaySeconds")


class IntakeSubmission(BaseSchema):
    hospital_id: StrictInt = Field(..., alias="hospitalId")
    answers: List[str] = Field(..., min_length=1)

    @field_validator("answers")
    @classmethod
    def require_an_answer(cls, v):
        if not any(answer.strip() for answer in v):
            raise ValueError("At least one non-empty answer is required")
        return v


class IntakeResult(BaseSchema):
    conversation_id: str = Field(..., alias="conversationId")
    summary_id: int = Field(..., alias="summaryId")
    queue_id: int = Field(..., alias="queueId")
    priority: int
    triage_code: TriageCode = Field(..., alias="triageCode")
