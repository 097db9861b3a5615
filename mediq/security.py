import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from sqlalchemy.orm import Session

from .database import get_db
from . import models, schemas

security_logger = logging.getLogger("security")

# Password hashing
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

DEFAULT_TOKEN_EXPIRY = timedelta(days=1)

_dummy_hash: Optional[str] = None


def _get_dummy_hash() -> str:
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = pwd_context.hash("mediq-dummy-password")
    return _dummy_hash


# Password utilities
def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash.

    A missing hash is checked against a dummy hash so that an unknown account
    costs the same work as a wrong password, then reported as a mismatch.
    """
    if hashed_password is None:
        pwd_context.verify(plain_password, _get_dummy_hash())
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unknown/legacy hash formats should not crash login; treat as non-match
        return False


def get_password_hash(password: str) -> str:
    """Generate password hash"""
    return pwd_context.hash(password)


class TokenService:
    """Issues and verifies signed session tokens.

    The signing secret is passed in at construction; there is no fallback
    secret, so a blank one is rejected immediately.
    """

    CLAIM_KEYS = ("id", "email", "role")

    def __init__(self, secret_key: str, algorithm: str = "HS256",
                 expires_delta: timedelta = DEFAULT_TOKEN_EXPIRY):
        if not secret_key or not secret_key.strip():
            raise ValueError("JWT secret is required to issue session tokens")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = expires_delta

    @property
    def max_age_seconds(self) -> int:
        return int(self.expires_delta.total_seconds())

    def create_access_token(self, claims: Dict[str, Any]) -> str:
        """Create a JWT carrying {id, email, role} with a fixed expiry."""
        now = datetime.now(timezone.utc)
        role = claims["role"]
        to_encode = {
            "id": claims["id"],
            "email": claims["email"],
            "role": getattr(role, "value", role),
            "iat": now,
            "exp": now + self.expires_delta,
        }
        return jwt.encode(to_encode, self._secret_key, algorithm=self.algorithm)

    def verify_token(self, token: Any) -> Optional[Dict[str, Any]]:
        """Return the {id, email, role} claims, or None if the token is not valid."""
        if not isinstance(token, str) or not token:
            return None
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
            claims = schemas.TokenClaims.model_validate(
                {key: payload.get(key) for key in self.CLAIM_KEYS}
            )
        except (JWTError, ValidationError):
            return None
        return claims.model_dump(mode="json")


# Dependencies for FastAPI
def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def _extract_token(request: Request) -> Optional[str]:
    token = request.cookies.get(request.app.state.settings.cookie_name)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> models.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    claims = token_service.verify_token(_extract_token(request))
    if not claims:
        raise credentials_exception

    user = db.get(models.User, claims["id"])
    if not user or user.email != claims["email"]:
        security_logger.warning(f"Token for user id {claims['id']} no longer matches a stored account")
        raise credentials_exception

    return user


def get_optional_patient(
    request: Request,
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> Optional[models.User]:
    """The signed-in patient, or None for anonymous callers and staff sessions."""
    claims = token_service.verify_token(_extract_token(request))
    if not claims or claims["role"] != models.UserRole.patient.value:
        return None
    user = db.get(models.User, claims["id"])
    if not user or user.email != claims["email"]:
        return None
    return user


def require_role(*allowed_roles: str):
    """Dependency factory for role-based access control"""
    def role_dependency(current_user: models.User = Depends(get_current_user)) -> models.User:
        if current_user.role.value not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {', '.join(allowed_roles)}"
            )
        return current_user

    return role_dependency


# Specific role dependencies
require_staff = require_role("admin", "doctor")
