# mediq/routers/auth.py
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import crud, schemas, security, models
from ..database import get_db

import logging

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
DUPLICATE_EMAIL = "User with this email already exists"


router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _server_error() -> JSONResponse:
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=schemas.MessageResponse)
def register(registration: schemas.RegisterRequest, db: Session = Depends(get_db)):
    """Create a hospital together with its first doctor account."""
    try:
        if crud.get_user_by_email(db, email=registration.email):
            return _error(status.HTTP_409_CONFLICT, DUPLICATE_EMAIL)

        doctor = crud.register_hospital_doctor(db, registration)
    except crud.DuplicateEmailError:
        # Another request registered the same email between the check and the insert
        logger.info("[REGISTER_POST] email claimed concurrently, answering 409")
        return _error(status.HTTP_409_CONFLICT, DUPLICATE_EMAIL)
    except Exception:
        logger.error("[REGISTER_POST] registration failed", exc_info=True)
        return _server_error()

    logger.info(f"Doctor account {doctor.id} registered for hospital {doctor.hospital_id}")
    return {"message": "Hospital and doctor registered successfully"}


@router.post("/login", response_model=schemas.LoginResponse)
def login(
    credentials: schemas.LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    token_service: security.TokenService = Depends(security.get_token_service),
):
    settings = request.app.state.settings
    try:
        user = crud.get_user_by_email(db, email=credentials.email)
        verified = security.verify_password(credentials.password, user.password if user else None)
        if not user or not verified:
            logger.warning("Failed login attempt")
            return _error(status.HTTP_401_UNAUTHORIZED, INVALID_CREDENTIALS)

        token = token_service.create_access_token(
            {"id": user.id, "email": user.email, "role": user.role}
        )
        body = schemas.LoginResponse(
            message="Logged in successfully",
            user=schemas.UserResponse.model_validate(user),
        )
    except Exception:
        logger.error("[LOGIN_POST] login failed", exc_info=True)
        return _server_error()

    logger.info(f"User {user.id} successfully authenticated.")
    response = JSONResponse(content=body.model_dump(mode="json", by_alias=True))
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=token_service.max_age_seconds,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@router.post("/logout", response_model=schemas.MessageResponse)
def logout(request: Request):
    settings = request.app.state.settings
    response = JSONResponse(content={"message": "Logged out successfully"})
    response.delete_cookie(
        key=settings.cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@router.get("/me", response_model=schemas.UserResponse)
def read_users_me(current_user: models.User = Depends(security.get_current_user)):
    """
    Get the current logged in user's details.
    """
    return current_user
