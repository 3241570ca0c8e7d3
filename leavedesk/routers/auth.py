import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leavedesk.core.exceptions import AuthenticationError, ForbiddenError
from leavedesk.database import get_db
from leavedesk.models.user import User
from leavedesk.routers.auth_deps import get_current_user
from leavedesk.schemas.auth import LoginRequest, Token, UserEnvelope, UserResponse, UserUpdate
from leavedesk.services import auth as auth_service
from leavedesk.services.base import utcnow
from leavedesk.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/login", response_model=Token)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == login_data.email).first()
    if not user or not auth_service.verify_password(login_data.password, user.hashed_password):
        logger.info("Failed login attempt")
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise ForbiddenError("User is inactive")

    user.last_login = utcnow()
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)

    access_token = auth_service.create_access_token(data={"sub": user.id, "role": user.role.value})
    logger.info(f"User {user.id} logged in")
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user,
    }


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/profile", response_model=UserEnvelope)
def update_profile(
    update_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update the current user's name, email or password."""
    user = UserService(db).update_profile(
        current_user,
        name=update_data.name,
        email=update_data.email,
        password=update_data.password,
    )
    return {"message": "Profile updated successfully", "user": user}
