from sqlalchemy import Column, Integer, Date, Enum, ForeignKey, DateTime, Boolean, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from leavedesk.database import Base
import enum


class LeaveStatus(str, enum.Enum):
    PENDING = "Pending"
    PENDING_ADMIN_APPROVAL = "PendingAdminApproval"
    PENDING_HR_APPROVAL = "PendingHrApproval"
    PENDING_HR_ADMIN_APPROVAL = "PendingHrAdminApproval"
    APPROVED = "Approved"
    REJECTED = "Rejected"


TERMINAL_STATUSES = frozenset({LeaveStatus.APPROVED, LeaveStatus.REJECTED})
DECISION_STATUSES = TERMINAL_STATUSES


class LeaveType(str, enum.Enum):
    SICK = "Sick"
    CASUAL = "Casual"
    EARNED = "Earned"


class Leave(Base):
    __tablename__ = "leaves"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(LeaveType), nullable=False)
    # Nullable for rows created before dates were mandatory; aggregates skip them
    start_date = Column(Date, nullable=True, index=True)
    end_date = Column(Date, nullable=True, index=True)
    reason = Column(Text, nullable=True)
    status = Column(Enum(LeaveStatus), default=LeaveStatus.PENDING, nullable=False, index=True)
    manager_comment = Column(Text, nullable=True)
    hr_comment = Column(Text, nullable=True)
    duration = Column(Integer, nullable=True)
    conflict_detected = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="leaves")
    # Deleting a leave clears notifications.leave_id instead of removing the notices
    notifications = relationship("Notification", back_populates="leave")

    def __repr__(self):
        return f"<Leave {self.id} {self.type.value} {self.start_date}..{self.end_date} ({self.status.value})>"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
