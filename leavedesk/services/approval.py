"""
Role-gated status transitions for leave requests.

Each ``decide_as_*`` method checks, in order: the requested status, the
comment, existence, terminal state, and finally whether the actor may act
on the leave in its current status. Nothing is written unless every check
passes.
"""
from typing import Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from leavedesk.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStatusError,
    NotFoundError,
    ValidationError,
)
from leavedesk.models.leave import DECISION_STATUSES, Leave, LeaveStatus
from leavedesk.models.notification import NotificationType
from leavedesk.models.user import User
from leavedesk.services import policy
from leavedesk.services.base import BaseService, utcnow


class ApprovalService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)

    def _load_for_decision(self, leave_id: int, status, comment: Optional[str]) -> Tuple[Leave, LeaveStatus]:
        try:
            decision = LeaveStatus(status)
        except ValueError:
            raise InvalidStatusError()
        if decision not in DECISION_STATUSES:
            raise InvalidStatusError()
        if comment is None or not comment.strip():
            raise ValidationError("comment is required")

        leave = self.db.query(Leave).options(joinedload(Leave.user)).filter(Leave.id == leave_id).first()
        if not leave:
            raise NotFoundError("Leave request not found")
        if leave.is_terminal:
            raise ConflictError(
                f"Leave request already {leave.status.value.lower()}",
                details={"status": leave.status.value},
            )
        return leave, decision

    def decide_as_admin(self, admin: User, leave_id: int, status, comment: Optional[str]) -> Leave:
        leave, decision = self._load_for_decision(leave_id, status, comment)
        if not policy.admin_may_decide(leave.user.role, leave.status, leave.duration):
            raise ForbiddenError("Leave approval below threshold should be handled by Manager")

        previous = leave.status
        leave.status = decision
        leave.manager_comment = comment
        self.commit()
        self.db.refresh(leave)
        self.log_info(
            f"Leave {leave.id} {decision.value.lower()} by Admin {admin.id}",
            leave_id=leave.id, previous_status=previous.value, leave_status=decision.value,
        )
        return leave

    def decide_as_hr(self, hr: User, leave_id: int, status, comment: Optional[str]) -> Leave:
        leave, decision = self._load_for_decision(leave_id, status, comment)
        if not policy.hr_may_decide(leave.user.role, leave.status):
            raise ForbiddenError("Not authorized to approve this leave")

        previous = leave.status
        leave.status = policy.hr_outcome(previous, decision)
        leave.hr_comment = comment
        self.commit()
        self.db.refresh(leave)
        self.log_info(
            f"Leave {leave.id} moved {previous.value} -> {leave.status.value} by HR {hr.id}",
            leave_id=leave.id, previous_status=previous.value, leave_status=leave.status.value,
        )
        return leave

    def decide_as_manager(self, manager: User, leave_id: int, status, comment: Optional[str]) -> Leave:
        leave, decision = self._load_for_decision(leave_id, status, comment)
        owner = leave.user
        if owner.manager_id != manager.id:
            raise ForbiddenError("Leave request not in your team")
        if not policy.manager_may_decide(owner.role, owner.manager_id, manager.id, leave.status):
            raise ForbiddenError("Not authorized to approve this leave")

        # Leave status and the manager's audit stamp commit together
        now = utcnow()
        leave.status = decision
        leave.manager_comment = comment
        if decision == LeaveStatus.APPROVED:
            manager.last_leave_approved_at = now
        else:
            manager.last_leave_rejected_at = now
        self.commit()
        self.db.refresh(leave)
        self.log_info(
            f"Leave {leave.id} {decision.value.lower()} by Manager {manager.id}",
            leave_id=leave.id, leave_status=decision.value,
        )
        return leave


def decision_notice(leave: Leave, actor_label: str) -> Tuple[str, str, NotificationType]:
    """Title, message and type of the notification sent to the leave owner."""
    if leave.status == LeaveStatus.APPROVED:
        return (
            "Leave Approved",
            f"Your {leave.type.value} leave request for {leave.duration} days has been approved by {actor_label}.",
            NotificationType.SUCCESS,
        )
    if leave.status == LeaveStatus.REJECTED:
        return (
            "Leave Rejected",
            f"Your {leave.type.value} leave request has been rejected by {actor_label}.",
            NotificationType.ERROR,
        )
    return (
        "Leave Update",
        f"Your {leave.type.value} leave request has been approved by {actor_label} and is pending Admin approval.",
        NotificationType.INFO,
    )
