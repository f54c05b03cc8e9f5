"""
用户相关的Pydantic模型
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from fleet_notify.models.user import UserRole


class UserBase(BaseModel):
    username: str
    name: str
    role: UserRole


class UserResponse(UserBase):
    id: int
    email: Optional[str] = None
    assigned_vehicle_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class UserSummary(BaseModel):
    """通知中附带的发送方信息"""
    id: int
    name: str
    email: Optional[str] = None
    role: UserRole

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserResponse
