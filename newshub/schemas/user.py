from pydantic import EmailStr, Field
from typing import List, Optional
import datetime

from newshub.schemas.base import CamelModel


class AdminUserCreate(CamelModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Optional[str] = "admin"


class AdminUserRead(CamelModel):
    id: int
    username: str
    email: str
    role: str
    is_active: bool
    last_login: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class AuthResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    token: str
    refresh_token: str
    expires_at: datetime.datetime
    user: AdminUserRead


class SessionRead(CamelModel):
    id: int
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    is_active: bool
    expires_at: datetime.datetime
    refresh_expires_at: datetime.datetime
    created_at: Optional[datetime.datetime] = None
    current: bool = False


class SessionListResponse(CamelModel):
    success: bool = True
    sessions: List[SessionRead]


class LogoutAllResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    deactivated: int
