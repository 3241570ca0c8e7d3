from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leavedesk.database import Base
import enum


class NotificationType(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class Notification(Base):
    """A decision notice for a leave owner. Rows are only written by the dispatcher."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Kept after the leave is cancelled, with the link cleared
    leave_id = Column(Integer, ForeignKey("leaves.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationType), default=NotificationType.INFO, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="notifications")
    leave = relationship("Leave", back_populates="notifications")

    def __repr__(self):
        return f"<Notification {self.id} user={self.user_id} {self.type.value}: {self.title}>"
