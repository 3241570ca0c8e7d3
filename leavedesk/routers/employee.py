from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from leavedesk.database import get_db
from leavedesk.models.leave import LeaveStatus
from leavedesk.models.user import User
from leavedesk.routers.auth_deps import get_current_user
from leavedesk.schemas.leave import (
    LeaveBalanceResponse,
    LeaveEnvelope,
    LeaveRequestCreate,
    LeaveRequestUpdate,
    LeaveResponse,
    MessageResponse,
    TodayStatusResponse,
)
from leavedesk.services.base import utc_today
from leavedesk.services.leave_service import LeaveService

router = APIRouter(prefix="/employee", tags=["employee"])


def get_leave_service(db: Session = Depends(get_db)) -> LeaveService:
    return LeaveService(db)


@router.post("/leave", response_model=LeaveEnvelope, status_code=status.HTTP_201_CREATED)
def submit_leave_request(
    request: LeaveRequestCreate,
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_user),
):
    leave = service.submit(current_user, request.start_date, request.end_date, request.type, request.reason)
    return {"message": "Leave request submitted", "leave": leave}


@router.get("/leave", response_model=List[LeaveResponse])
def get_own_leaves(
    leave_status: Optional[LeaveStatus] = Query(None, alias="status"),
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_user),
):
    return service.list_own(current_user, status=leave_status)


@router.get("/leave/history", response_model=List[LeaveResponse])
def get_leave_history(
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_user),
):
    return service.list_own(current_user)


@router.get("/leave/status/today", response_model=TodayStatusResponse)
def check_today_leave_status(
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_user),
):
    return {"on_leave_today": service.is_on_leave(current_user, utc_today())}


@router.get("/leave/balance", response_model=LeaveBalanceResponse)
def get_leave_balance(
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_user),
):
    return service.balance(current_user)


@router.put("/leave/{leave_id}", response_model=LeaveEnvelope)
def edit_leave_request(
    leave_id: int,
    request: LeaveRequestUpdate,
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_user),
):
    leave = service.edit(current_user, leave_id, request.start_date, request.end_date, request.type, request.reason)
    return {"message": "Leave request updated", "leave": leave}


@router.delete("/leave/{leave_id}", response_model=MessageResponse)
def cancel_leave_request(
    leave_id: int,
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_user),
):
    service.cancel(current_user, leave_id)
    return {"message": "Leave request canceled successfully"}
