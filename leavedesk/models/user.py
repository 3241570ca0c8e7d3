"""
User model.

The reporting line is stored once, as ``manager_id``. ``reports`` is the
derived inverse and is never written to directly.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from leavedesk.database import Base


class UserRole(str, enum.Enum):
    """
    Closed set of roles.

    - ADMIN: full access, final approver for escalated leaves
    - HR: approves Employee/Manager leaves routed to HR
    - MANAGER: approves short leaves of direct reports
    - EMPLOYEE: self-service access
    """
    EMPLOYEE = "Employee"
    MANAGER = "Manager"
    HR = "HR"
    ADMIN = "Admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)

    leave_balance_paid = Column(Integer, default=0, nullable=False)
    leave_balance_sick = Column(Integer, default=0, nullable=False)

    manager_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)

    # Audit stamps, only meaningful for managers
    last_leave_approved_at = Column(DateTime, nullable=True)
    last_leave_rejected_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    manager = relationship("User", remote_side=[id])
    reports = relationship("User", viewonly=True, order_by="User.id")
    leaves = relationship("Leave", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

