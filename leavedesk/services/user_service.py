from typing import List, Optional

from sqlalchemy.orm import Session

from leavedesk.core.config import settings
from leavedesk.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from leavedesk.models.user import User, UserRole
from leavedesk.services import auth as auth_service
from leavedesk.services.base import BaseService

# Admin accounts are provisioned out of band (seed script), never through the API
CREATABLE_ROLES = (UserRole.EMPLOYEE, UserRole.MANAGER, UserRole.HR)
MIN_PASSWORD_LENGTH = 6


class UserService(BaseService):
    """Directory management: accounts, roles and reporting lines."""

    def __init__(self, db: Session):
        super().__init__(db)

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(self, role: Optional[UserRole] = None) -> List[User]:
        query = self.db.query(User)
        if role is not None:
            query = query.filter(User.role == role)
        return query.order_by(User.id).all()

    def _ensure_email_free(self, email: str, exclude_id: Optional[int] = None):
        query = self.db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise ConflictError("Email already exists")

    def create_user(
        self,
        email: str,
        password: str,
        name: str,
        role: UserRole,
        leave_balance_paid: Optional[int] = None,
        leave_balance_sick: Optional[int] = None,
        manager_id: Optional[int] = None,
    ) -> User:
        if role not in CREATABLE_ROLES:
            raise ValidationError("Invalid role")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        self._ensure_email_free(email)

        user = User(
            email=email,
            hashed_password=auth_service.get_password_hash(password),
            name=name,
            role=role,
            leave_balance_paid=leave_balance_paid if leave_balance_paid is not None else settings.leave.default_paid_balance,
            leave_balance_sick=leave_balance_sick if leave_balance_sick is not None else settings.leave.default_sick_balance,
            is_active=True,
        )
        if manager_id is not None:
            if role != UserRole.EMPLOYEE:
                raise ValidationError("Only employees can be assigned a manager")
            manager = self.db.query(User).filter(User.id == manager_id, User.role == UserRole.MANAGER).first()
            if not manager:
                raise ValidationError("Invalid managerId")
            user.manager_id = manager.id

        self.db.add(user)
        self.commit()
        self.db.refresh(user)
        self.log_info(f"Created {role.value} user {user.id}", user_id=user.id)
        return user

    def update_role(self, user_id: int, role: UserRole) -> User:
        user = self.get_user(user_id)
        if user.role == UserRole.ADMIN:
            raise ForbiddenError("Cannot change role of Admin user")
        user.role = role
        if role != UserRole.EMPLOYEE:
            # Only employees report to a manager
            user.manager_id = None
        self.commit()
        self.db.refresh(user)
        self.log_info(f"User {user.id} role changed to {role.value}", user_id=user.id)
        return user

    def assign_manager(self, employee_id: int, manager_id: int) -> User:
        if employee_id == manager_id:
            raise ValidationError("A user cannot be their own manager")
        employee = self.db.query(User).filter(User.id == employee_id, User.role == UserRole.EMPLOYEE).first()
        if not employee:
            raise NotFoundError("Employee not found")
        manager = self.db.query(User).filter(User.id == manager_id, User.role == UserRole.MANAGER).first()
        if not manager:
            raise NotFoundError("Manager not found")

        employee.manager_id = manager.id
        self.commit()
        self.db.refresh(employee)
        self.log_info(f"Employee {employee.id} assigned to manager {manager.id}", user_id=employee.id)
        return employee

    def update_profile(
        self,
        user: User,
        name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        if not name and not email and not password:
            raise ValidationError("At least one field required")
        if password and len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if email and email != user.email:
            self._ensure_email_free(email, exclude_id=user.id)
            user.email = email
        if name:
            user.name = name
        if password:
            user.hashed_password = auth_service.get_password_hash(password)
        self.commit()
        self.db.refresh(user)
        return user
