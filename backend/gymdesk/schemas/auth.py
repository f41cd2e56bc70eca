from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from gymdesk.models.user import RoleEnum


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str
    role: RoleEnum = RoleEnum.STAFF


class UserResponse(BaseModel):
    id: int
    username: str
    role: RoleEnum
    is_active: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True
