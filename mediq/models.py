# mediq/models.py
import enum
import time

from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, DateTime,
    Enum as SQLAlchemyEnum, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def _epoch_seconds() -> int:
    return int(time.time())


def _enum_values(enum_cls):
    # Persist the wire value ("in-progress"), not the member name
    return [member.value for member in enum_cls]


class UserRole(str, enum.Enum):
    patient = "patient"
    doctor = "doctor"
    admin = "admin"


class QueueStatus(str, enum.Enum):
    waiting = "waiting"
    in_progress = "in-progress"
    completed = "completed"


class MessageSender(str, enum.Enum):
    user = "user"
    bot = "bot"


class TriageCode(str, enum.Enum):
    emergency = "emergency"
    urgent = "urgent"
    standard = "standard"
    non_urgent = "non-urgent"

    @property
    def priority(self) -> int:
        """Queue priority for this code; lower is seen sooner."""
        return {
            TriageCode.emergency: 1,
            TriageCode.urgent: 2,
            TriageCode.standard: 3,
            TriageCode.non_urgent: 4,
        }[self]


class Hospital(Base):
    __tablename__ = "hospitals"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    users = relationship("User", back_populates="hospital")
    queue_entries = relationship("QueueEntry", back_populates="hospital")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(
        SQLAlchemyEnum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.patient,
        nullable=False,
    )
    hospital_id = Column(Integer, ForeignKey("hospitals.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    hospital = relationship("Hospital", back_populates="users")


class ChatMessage(Base):
    __tablename__ = "chats"
    __table_args__ = (
        Index("idx_chats_conversation_created", "conversation_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(String(36), nullable=False)
    text = Column(Text, nullable=False)
    sender = Column(
        SQLAlchemyEnum(MessageSender, name="message_sender", values_callable=_enum_values),
        nullable=False,
    )
    created_at = Column(Integer, nullable=False, default=_epoch_seconds)
    # Orders messages written within the same second
    sequence = Column(Integer, nullable=False, default=0)


class Summary(Base):
    __tablename__ = "summaries"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(String(36), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    triage_code = Column(String(32), nullable=True)
    full_name = Column(String(255), nullable=True)
    clinic = Column(String(255), nullable=True)
    symptoms = Column(Text, nullable=True)
    recent_visit = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(Integer, nullable=False, default=_epoch_seconds)

    patient = relationship("User")


class QueueEntry(Base):
    __tablename__ = "queue"
    __table_args__ = (
        Index("idx_queue_hospital_order", "hospital_id", "priority", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(Integer, ForeignKey("hospitals.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    summary_id = Column(Integer, ForeignKey("summaries.id", ondelete="SET NULL"), nullable=True)
    priority = Column(Integer, nullable=False, default=TriageCode.standard.priority)
    status = Column(
        SQLAlchemyEnum(QueueStatus, name="queue_status", values_callable=_enum_values),
        default=QueueStatus.waiting,
        nullable=False,
    )
    created_at = Column(Integer, nullable=False, default=_epoch_seconds)

    hospital = relationship("Hospital", back_populates="queue_entries")
    patient = relationship("User")
    summary = relationship("Summary")
