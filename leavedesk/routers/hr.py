from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from leavedesk.database import get_db
from leavedesk.models.leave import Leave, LeaveStatus
from leavedesk.models.user import User, UserRole
from leavedesk.routers.auth_deps import require_hr
from leavedesk.schemas.attendance import AttendanceEntry
from leavedesk.schemas.leave import LeaveDecisionRequest, LeaveEnvelope, LeaveRequestCreate, LeaveResponse
from leavedesk.services.approval import ApprovalService, decision_notice
from leavedesk.services.attendance import HR_VISIBLE_ROLES, AttendanceService
from leavedesk.services.base import utc_today
from leavedesk.services.leave_service import LeaveService
from leavedesk.services.notification import NotificationDispatcher, get_notification_dispatcher

router = APIRouter(prefix="/hr", tags=["hr"])

# HR reviews Employee and Manager leaves only
REVIEWABLE_ROLES = (UserRole.EMPLOYEE, UserRole.MANAGER)


@router.post("/leave/request", response_model=LeaveEnvelope, status_code=status.HTTP_201_CREATED)
def create_leave_request_by_hr(
    request: LeaveRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    leave = LeaveService(db).submit(current_user, request.start_date, request.end_date, request.type, request.reason)
    return {"message": "Leave request created and pending Admin approval", "leave": leave}


@router.get("/leaves", response_model=List[LeaveResponse])
def get_leaves_for_hr(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return db.query(Leave).join(User, Leave.user_id == User.id).filter(
        User.role.in_(REVIEWABLE_ROLES)
    ).order_by(Leave.created_at.desc(), Leave.id.desc()).all()


@router.get("/leaves/pending", response_model=List[LeaveResponse])
def get_leaves_awaiting_hr_approval(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return db.query(Leave).join(User, Leave.user_id == User.id).filter(
        Leave.status.in_([LeaveStatus.PENDING_HR_APPROVAL, LeaveStatus.PENDING_HR_ADMIN_APPROVAL]),
        User.role.in_(REVIEWABLE_ROLES),
    ).order_by(Leave.created_at.asc(), Leave.id.asc()).all()


@router.patch("/leave/{leave_id}/decision", response_model=LeaveEnvelope)
def approve_or_reject_leave_by_hr(
    leave_id: int,
    decision: LeaveDecisionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: User = Depends(require_hr()),
):
    leave = ApprovalService(db).decide_as_hr(current_user, leave_id, decision.status, decision.comment)
    background_tasks.add_task(dispatcher.dispatch, leave.user_id, *decision_notice(leave, "HR"), leave_id=leave.id)
    return {"message": f"Leave {leave.status.value.lower()} by HR", "leave": leave}


@router.get("/attendance/today", response_model=List[AttendanceEntry])
def get_daily_attendance_for_hr(
    on_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    service = AttendanceService(db)
    return service.daily_attendance(service.population_for(current_user), on_date or utc_today())


@router.get("/analytics/leaves", response_model=Dict[str, int])
def get_leave_analytics_for_hr(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return AttendanceService(db).leave_day_summary(HR_VISIBLE_ROLES, date_from, date_to)
