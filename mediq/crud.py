# mediq/crud.py
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .security import get_password_hash

logger = logging.getLogger(__name__)


class CRUDError(Exception):
    pass


class DuplicateEmailError(CRUDError):
    def __init__(self, email: str):
        super().__init__(f"User with email {email} already exists")
        self.email = email


def _is_email_conflict(error: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: users.email"
    # postgres: 'duplicate key value violates unique constraint "ix_users_email"'
    message = str(error.orig).lower()
    return "unique" in message and "email" in message


# ==================== USER / HOSPITAL OPERATIONS ====================

def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    try:
        return db.query(models.User).filter(models.User.email == email).first()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching user by email: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def get_hospital(db: Session, hospital_id: int) -> Optional[models.Hospital]:
    try:
        return db.get(models.Hospital, hospital_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching hospital {hospital_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def register_hospital_doctor(db: Session, registration: schemas.RegisterRequest) -> models.User:
    """Create a hospital and its first doctor account as one transaction.

    Either both rows are committed or neither is: any failure after the
    hospital insert rolls the whole unit back, so no orphaned hospital
    survives. A unique violation on users.email raised by the store itself
    is reported as DuplicateEmailError.
    """
    try:
        hospital = models.Hospital(name=registration.hospital_name)
        db.add(hospital)
        db.flush()  # assigns hospital.id inside the open transaction

        hashed_password = get_password_hash(registration.password)
        doctor = models.User(
            full_name=registration.full_name,
            email=registration.email,
            password=hashed_password,
            role=models.UserRole.doctor,
            hospital_id=hospital.id,
        )
        db.add(doctor)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_email_conflict(e):
            raise DuplicateEmailError(registration.email)
        raise CRUDError("Registration failed due to data constraints")
    except SQLAlchemyError as e:
        db.rollback()
        raise CRUDError(f"Database error: {str(e)}")
    except Exception:
        db.rollback()
        raise

    db.refresh(doctor)
    logger.info(f"Registered hospital '{hospital.name}' (ID: {hospital.id}) with doctor ID {doctor.id}")
    return doctor
