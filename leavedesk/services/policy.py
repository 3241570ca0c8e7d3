"""
Leave approval policy.

Pure functions only: no session, no clock. Callers gather the inputs
(requester role, duration, approved leave count) and persist the outcome.
"""
from datetime import date
from typing import Optional

from leavedesk.core.config import settings
from leavedesk.core.exceptions import ValidationError
from leavedesk.models.leave import LeaveStatus, TERMINAL_STATUSES
from leavedesk.models.user import UserRole

ESCALATION_DURATION_DAYS = settings.leave.escalation_duration_days
MONTHLY_APPROVED_LEAVE_LIMIT = settings.leave.monthly_approved_leave_limit
ADMIN_APPROVAL_THRESHOLD_DAYS = settings.leave.admin_approval_threshold_days


def leave_duration(start_date: Optional[date], end_date: Optional[date]) -> int:
    """Inclusive day count; a single-day leave lasts 1 day."""
    if start_date is None or end_date is None:
        raise ValidationError("startDate and endDate are required")
    if start_date > end_date:
        raise ValidationError("Start date cannot be after end date")
    return (end_date - start_date).days + 1


def decide_initial_status(
    role: UserRole,
    duration_days: int,
    approved_leaves_this_month: int,
    *,
    escalation_days: int = ESCALATION_DURATION_DAYS,
    monthly_limit: int = MONTHLY_APPROVED_LEAVE_LIMIT,
) -> LeaveStatus:
    """
    Status a new or edited leave request enters. Rules are evaluated in
    order and the first match wins.
    """
    if role == UserRole.HR:
        return LeaveStatus.PENDING_ADMIN_APPROVAL

    if role == UserRole.MANAGER:
        if duration_days >= escalation_days:
            return LeaveStatus.PENDING_HR_ADMIN_APPROVAL
        return LeaveStatus.PENDING_HR_APPROVAL

    if role == UserRole.EMPLOYEE:
        if duration_days >= escalation_days and approved_leaves_this_month >= monthly_limit:
            return LeaveStatus.PENDING_ADMIN_APPROVAL
        return LeaveStatus.PENDING

    if role == UserRole.ADMIN:
        return LeaveStatus.PENDING

    if duration_days > escalation_days:
        return LeaveStatus.PENDING_ADMIN_APPROVAL
    return LeaveStatus.PENDING


def is_terminal(status: LeaveStatus) -> bool:
    return status in TERMINAL_STATUSES


def admin_may_decide(
    owner_role: UserRole,
    status: LeaveStatus,
    duration_days: Optional[int],
    *,
    threshold_days: int = ADMIN_APPROVAL_THRESHOLD_DAYS,
) -> bool:
    if is_terminal(status):
        return False
    if status == LeaveStatus.PENDING_ADMIN_APPROVAL:
        return True
    if owner_role in (UserRole.HR, UserRole.ADMIN):
        return True
    if owner_role in (UserRole.MANAGER, UserRole.EMPLOYEE):
        return (duration_days or 0) > threshold_days
    return False


def hr_may_decide(owner_role: UserRole, status: LeaveStatus) -> bool:
    if owner_role not in (UserRole.EMPLOYEE, UserRole.MANAGER):
        return False
    return status in (LeaveStatus.PENDING_HR_APPROVAL, LeaveStatus.PENDING_HR_ADMIN_APPROVAL)


def hr_outcome(current: LeaveStatus, decision: LeaveStatus) -> LeaveStatus:
    """
    HR is the last approver for PendingHrApproval and the first link of the
    HR -> Admin chain for PendingHrAdminApproval.
    """
    if current == LeaveStatus.PENDING_HR_ADMIN_APPROVAL and decision == LeaveStatus.APPROVED:
        return LeaveStatus.PENDING_ADMIN_APPROVAL
    return decision


def manager_may_decide(owner_role: UserRole, owner_manager_id: Optional[int], manager_id: int, status: LeaveStatus) -> bool:
    return (
        owner_role == UserRole.EMPLOYEE
        and owner_manager_id is not None
        and owner_manager_id == manager_id
        and status == LeaveStatus.PENDING
    )
