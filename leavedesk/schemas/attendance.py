from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Literal, Optional


class AttendanceEntry(BaseModel):
    user_id: int
    name: str
    role: str
    status: Literal["Present", "Absent"]


class AttendancePage(BaseModel):
    total: int
    page: int
    size: int
    total_pages: int
    items: List[AttendanceEntry]


class LatecomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    last_login: Optional[datetime] = None


class ManagerDashboard(BaseModel):
    total_leaves_pending: int
    upcoming_leaves: int
    latecomer_count: int


class MonthlyTrend(BaseModel):
    month: str
    leave_count: int
    leave_days: int
