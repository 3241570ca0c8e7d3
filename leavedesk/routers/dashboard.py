from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leavedesk.database import get_db
from leavedesk.models.user import User, UserRole
from leavedesk.routers.auth_deps import require_role
from leavedesk.schemas.attendance import MonthlyTrend
from leavedesk.services.attendance import ALL_ROLES, HR_VISIBLE_ROLES, AttendanceService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/monthly-trends", response_model=List[MonthlyTrend])
def get_monthly_trends(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role([UserRole.HR, UserRole.ADMIN])),
):
    # HR never sees Admin leave usage
    roles = ALL_ROLES if current_user.role == UserRole.ADMIN else HR_VISIBLE_ROLES
    return AttendanceService(db).monthly_trends(roles, year=year)
