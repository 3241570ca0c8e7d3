from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from leavedesk.database import get_db
from leavedesk.models.leave import Leave
from leavedesk.models.user import User, UserRole
from leavedesk.routers.auth_deps import require_admin
from leavedesk.schemas.attendance import AttendanceEntry
from leavedesk.schemas.auth import ManagerAssignment, RoleUpdate, UserCreate, UserEnvelope, UserResponse
from leavedesk.schemas.leave import LeaveDecisionRequest, LeaveEnvelope, LeaveResponse
from leavedesk.services.approval import ApprovalService, decision_notice
from leavedesk.services.attendance import ALL_ROLES, AttendanceService
from leavedesk.services.base import utc_today
from leavedesk.services.notification import NotificationDispatcher, get_notification_dispatcher
from leavedesk.services.user_service import UserService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin())]
)


@router.post("/users", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
def create_user_by_admin(data: UserCreate, db: Session = Depends(get_db)):
    user = UserService(db).create_user(
        email=data.email,
        password=data.password,
        name=data.name,
        role=data.role,
        leave_balance_paid=data.leave_balance_paid,
        leave_balance_sick=data.leave_balance_sick,
        manager_id=data.manager_id,
    )
    return {"message": "User created successfully", "user": user}


@router.get("/users", response_model=List[UserResponse])
def get_all_users(
    role: Optional[UserRole] = None,
    db: Session = Depends(get_db),
):
    return UserService(db).list_users(role)


@router.patch("/users/{user_id}/role", response_model=UserEnvelope)
def update_user_role(user_id: int, data: RoleUpdate, db: Session = Depends(get_db)):
    user = UserService(db).update_role(user_id, data.role)
    return {"message": "User role updated successfully", "user": user}


@router.post("/assign-employee", response_model=UserEnvelope)
def assign_employee_to_manager(data: ManagerAssignment, db: Session = Depends(get_db)):
    employee = UserService(db).assign_manager(data.employee_id, data.manager_id)
    return {"message": "Employee assigned to Manager", "user": employee}


@router.get("/leaves/summary", response_model=Dict[str, int])
def get_all_staff_leaves_summary(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return AttendanceService(db).leave_day_summary(ALL_ROLES, date_from, date_to)


@router.get("/attendance/daily", response_model=List[AttendanceEntry])
def get_daily_attendance(
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    service = AttendanceService(db)
    return service.daily_attendance(service.users_with_roles(ALL_ROLES), on_date or utc_today())


@router.patch("/leaves/{leave_id}/approve", response_model=LeaveEnvelope)
def approve_leave_by_admin(
    leave_id: int,
    decision: LeaveDecisionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: User = Depends(require_admin()),
):
    leave = ApprovalService(db).decide_as_admin(current_user, leave_id, decision.status, decision.comment)
    background_tasks.add_task(dispatcher.dispatch, leave.user_id, *decision_notice(leave, "Admin"), leave_id=leave.id)
    return {"message": "Leave status updated by Admin", "leave": leave}


@router.get("/leaves/hr", response_model=List[LeaveResponse])
def get_hr_leave_requests_for_admin(db: Session = Depends(get_db)):
    return db.query(Leave).join(User, Leave.user_id == User.id).filter(
        User.role == UserRole.HR
    ).order_by(Leave.created_at.desc(), Leave.id.desc()).all()
