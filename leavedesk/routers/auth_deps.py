"""
Authentication and role dependencies for FastAPI endpoints.
"""
import logging
from typing import Callable, List

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from leavedesk.core.exceptions import AuthenticationError, ForbiddenError
from leavedesk.database import get_db
from leavedesk.models.user import User, UserRole
from leavedesk.schemas.auth import TokenData
from leavedesk.services import auth as auth_service

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """
    Extracts and validates the current user from the bearer token.
    """
    if not token:
        raise AuthenticationError("Missing or invalid token")

    payload = auth_service.decode_access_token(token)
    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise AuthenticationError()

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise AuthenticationError("TOKEN_EXPIRED")

    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise AuthenticationError("Invalid token type")

    try:
        token_data = TokenData(user_id=payload.get("sub"), role=payload.get("role"))
    except PydanticValidationError:
        # Unknown role values or a non-numeric subject are rejected outright
        logger.warning("Authentication failed: Malformed claims")
        raise AuthenticationError("Malformed token claims")

    user = db.query(User).filter(User.id == token_data.user_id).first()
    if user is None:
        logger.warning(f"Authentication failed: User {token_data.user_id} not found in database")
        raise AuthenticationError("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: User {user.id} is inactive")
        raise ForbiddenError("User is inactive")
    return user


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(require_role([UserRole.ADMIN]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise ForbiddenError(
                f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def require_hr():
    return require_role([UserRole.HR])


def require_manager():
    return require_role([UserRole.MANAGER])


def require_admin():
    return require_role([UserRole.ADMIN])
