from pydantic import BaseModel, EmailStr, ConfigDict, Field
from typing import Optional
from leavedesk.models.user import UserRole
from datetime import datetime


class UserBase(BaseModel):
    email: EmailStr
    name: str
    role: UserRole


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    role: UserRole
    leave_balance_paid: Optional[int] = Field(None, ge=0)
    leave_balance_sick: Optional[int] = Field(None, ge=0)
    manager_id: Optional[int] = None


class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    manager_id: Optional[int] = None
    leave_balance_paid: int
    leave_balance_sick: int
    last_login: Optional[datetime] = None
    last_leave_approved_at: Optional[datetime] = None
    last_leave_rejected_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserEnvelope(BaseModel):
    message: str
    user: UserResponse


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserResponse


class TokenData(BaseModel):
    user_id: int
    role: UserRole


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class RoleUpdate(BaseModel):
    role: UserRole


class ManagerAssignment(BaseModel):
    employee_id: int
    manager_id: int
