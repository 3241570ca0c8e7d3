# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, leave, notification

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .leave import Leave, LeaveStatus, LeaveType
from .notification import Notification, NotificationType

__all__ = [
    "User",
    "UserRole",
    "Leave",
    "LeaveStatus",
    "LeaveType",
    "Notification",
    "NotificationType",
]
