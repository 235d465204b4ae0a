# app/db/init_db.py
# Seed initial data into the database
# Run once after migrations: python -m app.db.init_db
#
# Creates:
#   1. Superadmin account (SUPERADMIN_EMAIL / SUPERADMIN_PASSWORD / SUPERADMIN_NAME)

import logging

from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.config import settings
from app.db.session import SessionLocal
from app.models.user import User
from app.services.user_service import create_account, normalise_email

logger = logging.getLogger("aigrader.init_db")


def seed_superadmin(db: Session) -> bool:
    """Create the superadmin account if it doesn't exist. Returns True when created."""
    email = normalise_email(settings.superadmin_email)
    if db.query(User.id).filter(User.email == email).first():
        logger.info(f"Superadmin already exists: {email}")
        return False

    create_account(
        db,
        email=email,
        password=settings.superadmin_password,
        full_name=settings.superadmin_name,
        role="superadmin",
    )
    logger.info(f"Superadmin created: {email}")
    return True


def init_db() -> None:
    logger.info("Seeding database...")
    db = SessionLocal()
    try:
        seed_superadmin(db)
        db.commit()
        logger.info("Done. Database seeded successfully.")
    except Exception:
        db.rollback()
        logger.exception("Seeding failed")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    init_db()
