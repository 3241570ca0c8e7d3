from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from typing import Dict, List, Optional
from leavedesk.models.leave import LeaveStatus, LeaveType


class LeaveRequestCreate(BaseModel):
    start_date: date
    end_date: date
    type: LeaveType
    reason: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date > self.end_date:
            raise ValueError("Start date cannot be after end date")
        return self


class LeaveRequestUpdate(LeaveRequestCreate):
    pass


class LeaveResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: LeaveType
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    status: LeaveStatus
    manager_comment: Optional[str] = None
    hr_comment: Optional[str] = None
    duration: Optional[int] = None
    conflict_detected: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeaveEnvelope(BaseModel):
    message: str
    leave: LeaveResponse


class MessageResponse(BaseModel):
    message: str


class LeaveDecisionRequest(BaseModel):
    # Kept as a string so that unknown statuses surface as InvalidStatusError
    status: str
    comment: str = Field(..., min_length=1, max_length=1000)


class TodayStatusResponse(BaseModel):
    on_leave_today: bool


class LeaveBalanceResponse(BaseModel):
    paid: int
    sick: int
    used: Dict[str, int]


class TeamLeavesPage(BaseModel):
    total: int
    page: int
    size: int
    total_pages: int
    items: List[LeaveResponse]
