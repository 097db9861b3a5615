import os
import logging

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from mediq.config import get_settings
from mediq.database import SessionLocal, init_engine, create_tables
from mediq import models
from mediq.security import get_password_hash

logger = logging.getLogger("seed_admin")


def get_env(name: str, default: str | None = None, required: bool = False) -> str:
    val = os.getenv(name, default)
    if required and not val:
        raise RuntimeError(f"Missing required env var: {name}")
    return val or ""


def upsert_admin(db: Session) -> models.User:
    email = get_env("ADMIN_DEFAULT_EMAIL", "admin@mediq.org")
    full_name = get_env("ADMIN_DEFAULT_NAME", "MediQ Administrator")
    raw_password = get_env("ADMIN_DEFAULT_PASSWORD", required=True)

    user = db.query(models.User).filter(models.User.email == email).first()
    password_hash = get_password_hash(raw_password)

    if user:
        # Keep an existing account active as admin with the configured password
        user.full_name = full_name
        user.role = models.UserRole.admin
        user.password = password_hash
        action = "updated"
    else:
        user = models.User(
            full_name=full_name,
            email=email,
            password=password_hash,
            role=models.UserRole.admin,
        )
        db.add(user)
        action = "created"

    db.commit()
    logger.info(f"Admin user {action}: email='{email}'")
    return user


def main():
    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    engine = init_engine(get_settings().database_url)
    create_tables(engine)

    db = SessionLocal()
    try:
        upsert_admin(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
