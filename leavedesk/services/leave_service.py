import calendar
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from leavedesk.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from leavedesk.models.leave import Leave, LeaveStatus, LeaveType
from leavedesk.models.user import User
from leavedesk.services import policy
from leavedesk.services.base import BaseService


def month_bounds(day: date):
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


class LeaveService(BaseService):
    """Self-service lifecycle of a leave request: submit, edit, cancel, list."""

    def __init__(self, db: Session):
        super().__init__(db)

    # --- Queries ---

    def get_leave(self, leave_id: int) -> Leave:
        leave = self.db.query(Leave).filter(Leave.id == leave_id).first()
        if not leave:
            raise NotFoundError("Leave request not found")
        return leave

    def count_approved_in_window(
        self,
        user_id: int,
        start_date: date,
        end_date: date,
        exclude_id: Optional[int] = None,
    ) -> int:
        """
        Approved leaves of ``user_id`` overlapping ``start_date..end_date``,
        restricted to the calendar month that contains ``start_date``.
        """
        first, last = month_bounds(start_date)
        query = self.db.query(func.count(Leave.id)).filter(
            Leave.user_id == user_id,
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date <= end_date,
            Leave.end_date >= start_date,
            Leave.start_date <= last,
            Leave.end_date >= first,
        )
        if exclude_id is not None:
            query = query.filter(Leave.id != exclude_id)
        return query.scalar() or 0

    def has_approved_overlap(self, user_id: int, start_date: date, end_date: date, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Leave.id).filter(
            Leave.user_id == user_id,
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date <= end_date,
            Leave.end_date >= start_date,
        )
        if exclude_id is not None:
            query = query.filter(Leave.id != exclude_id)
        return query.first() is not None

    def list_own(self, requester: User, status: Optional[LeaveStatus] = None) -> List[Leave]:
        # Newest first
        query = self.db.query(Leave).filter(Leave.user_id == requester.id)
        if status is not None:
            query = query.filter(Leave.status == status)
        return query.order_by(Leave.created_at.desc(), Leave.id.desc()).all()

    def is_on_leave(self, requester: User, on_date: date) -> bool:
        leave = self.db.query(Leave.id).filter(
            Leave.user_id == requester.id,
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date <= on_date,
            Leave.end_date >= on_date,
        ).first()
        return leave is not None

    def balance(self, requester: User) -> Dict[str, object]:
        rows = self.db.query(Leave.type, func.coalesce(func.sum(Leave.duration), 0)).filter(
            Leave.user_id == requester.id,
            Leave.status == LeaveStatus.APPROVED,
        ).group_by(Leave.type).all()
        used = {leave_type.value: 0 for leave_type in LeaveType}
        for leave_type, days in rows:
            used[leave_type.value] = int(days)
        return {
            "paid": requester.leave_balance_paid,
            "sick": requester.leave_balance_sick,
            "used": used,
        }

    # --- Mutations ---

    def _route(self, requester: User, start_date: date, end_date: date, exclude_id: Optional[int] = None):
        duration = policy.leave_duration(start_date, end_date)
        approved_this_month = self.count_approved_in_window(requester.id, start_date, end_date, exclude_id=exclude_id)
        status = policy.decide_initial_status(requester.role, duration, approved_this_month)
        conflict = self.has_approved_overlap(requester.id, start_date, end_date, exclude_id=exclude_id)
        return duration, status, conflict

    def submit(
        self,
        requester: User,
        start_date: Optional[date],
        end_date: Optional[date],
        leave_type: Optional[LeaveType],
        reason: Optional[str] = None,
    ) -> Leave:
        if leave_type is None:
            raise ValidationError("startDate, endDate and type are required")
        duration, status, conflict = self._route(requester, start_date, end_date)

        leave = Leave(
            user_id=requester.id,
            type=leave_type,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            duration=duration,
            status=status,
            conflict_detected=conflict,
        )
        self.db.add(leave)
        self.commit()
        self.db.refresh(leave)
        if conflict:
            self.log_warning(f"Leave {leave.id} overlaps an approved leave of user {requester.id}", leave_id=leave.id)
        self.log_info(
            f"Leave {leave.id} submitted by user {requester.id}",
            leave_id=leave.id, leave_status=status.value, duration=duration,
        )
        return leave

    def _owned_mutable(self, requester: User, leave_id: int, action: str) -> Leave:
        leave = self.get_leave(leave_id)
        if leave.user_id != requester.id:
            raise ForbiddenError(f"Forbidden: Cannot {action} others' leave")
        if leave.is_terminal:
            raise ConflictError(f"Cannot {action} approved or rejected leave")
        return leave

    def edit(
        self,
        requester: User,
        leave_id: int,
        start_date: Optional[date],
        end_date: Optional[date],
        leave_type: Optional[LeaveType],
        reason: Optional[str] = None,
    ) -> Leave:
        leave = self._owned_mutable(requester, leave_id, "edit")
        if leave_type is None:
            raise ValidationError("startDate, endDate and type are required")
        # Validate before touching the instance so a rejected edit leaves it intact
        duration, status, conflict = self._route(requester, start_date, end_date, exclude_id=leave.id)

        leave.start_date = start_date
        leave.end_date = end_date
        leave.type = leave_type
        if reason is not None:
            leave.reason = reason
        leave.duration = duration
        leave.status = status
        leave.conflict_detected = conflict
        self.commit()
        self.db.refresh(leave)
        self.log_info(f"Leave {leave.id} edited by user {requester.id}", leave_id=leave.id, leave_status=status.value)
        return leave

    def cancel(self, requester: User, leave_id: int) -> None:
        leave = self._owned_mutable(requester, leave_id, "cancel")
        self.db.delete(leave)
        self.commit()
        self.log_info(f"Leave {leave_id} cancelled by user {requester.id}", leave_id=leave_id)
