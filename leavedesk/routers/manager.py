from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from leavedesk.core.exceptions import ForbiddenError
from leavedesk.database import get_db
from leavedesk.models.leave import LeaveStatus
from leavedesk.models.user import User
from leavedesk.routers.auth_deps import require_manager
from leavedesk.schemas.attendance import AttendancePage, LatecomerResponse, ManagerDashboard
from leavedesk.schemas.leave import LeaveDecisionRequest, LeaveEnvelope, LeaveRequestCreate, TeamLeavesPage
from leavedesk.services.approval import ApprovalService, decision_notice
from leavedesk.services.attendance import AttendanceService
from leavedesk.services.base import utc_today
from leavedesk.services.leave_service import LeaveService
from leavedesk.services.notification import NotificationDispatcher, get_notification_dispatcher

router = APIRouter(prefix="/manager", tags=["manager"])


@router.post("/leave", response_model=LeaveEnvelope, status_code=status.HTTP_201_CREATED)
def create_leave_request_by_manager(
    request: LeaveRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    # Manager leave is routed to HR/Admin, never to peers
    leave = LeaveService(db).submit(current_user, request.start_date, request.end_date, request.type, request.reason)
    return {"message": "Leave request submitted", "leave": leave}


@router.get("/team-leaves", response_model=TeamLeavesPage)
def get_team_leave_requests(
    leave_status: Optional[LeaveStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    return AttendanceService(db).team_leaves(current_user, status=leave_status, page=page, size=size)


@router.patch("/{manager_id}/leave/{leave_id}/approve", response_model=LeaveEnvelope)
def approve_or_reject_leave_by_manager(
    manager_id: int,
    leave_id: int,
    decision: LeaveDecisionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: User = Depends(require_manager()),
):
    if manager_id != current_user.id:
        raise ForbiddenError("Managers can only act on their own team")
    leave = ApprovalService(db).decide_as_manager(current_user, leave_id, decision.status, decision.comment)
    background_tasks.add_task(dispatcher.dispatch, leave.user_id, *decision_notice(leave, "your Manager"), leave_id=leave.id)
    return {"message": f"Leave {leave.status.value.lower()} by Manager", "leave": leave}


@router.get("/team-attendance", response_model=AttendancePage)
def get_team_attendance(
    on_date: Optional[date] = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    return AttendanceService(db).team_attendance(current_user, on_date or utc_today(), page=page, size=size)


@router.get("/latecomers", response_model=List[LatecomerResponse])
def get_latecomers(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    return AttendanceService(db).latecomers(current_user)


@router.get("/dashboard", response_model=ManagerDashboard)
def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    return AttendanceService(db).manager_dashboard(current_user, utc_today())
