import sys
import os
import logging
from sqlalchemy.orm import Session

# Ensure we can import leavedesk modules
sys.path.append(os.getcwd())

from leavedesk.core.config import settings
from leavedesk.database import SessionLocal, init_db
from leavedesk.models.user import User, UserRole
from leavedesk.services.auth import get_password_hash

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

SEED_USERS = [
    ("admin@example.com", "Admin123!", "System Administrator", UserRole.ADMIN),
    ("hr@example.com", "Hr123456!", "HR Officer", UserRole.HR),
    ("manager@example.com", "Manager123!", "Team Manager", UserRole.MANAGER),
    ("employee@example.com", "Employee123!", "Team Employee", UserRole.EMPLOYEE),
]


def create_user(db: Session, email: str, password: str, name: str, role: UserRole, manager_id=None) -> User:
    # Check if user already exists to avoid unique constraint errors
    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        logger.warning(f"User {email} already exists. Skipping.")
        return existing_user

    user = User(
        email=email,
        name=name,
        hashed_password=get_password_hash(password),
        role=role,
        leave_balance_paid=settings.leave.default_paid_balance,
        leave_balance_sick=settings.leave.default_sick_balance,
        manager_id=manager_id,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created {role.value} -> {email}")
    return user


def seed_users():
    init_db()
    db: Session = SessionLocal()
    try:
        created = {}
        for email, password, name, role in SEED_USERS:
            manager = created.get(UserRole.MANAGER)
            manager_id = manager.id if role == UserRole.EMPLOYEE and manager else None
            created[role] = create_user(db, email, password, name, role, manager_id=manager_id)
    except Exception as e:
        logger.error(f"Error seeding users: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_users()
