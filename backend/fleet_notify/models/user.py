"""
用户模型
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func

from fleet_notify.database import Base


class UserRole(str, enum.Enum):
    """用户角色枚举"""
    ADMIN = "admin"      # 管理员 - 可群发、可删除任意可见通知
    DRIVER = "driver"    # 司机 - 可向本车学生或管理员发送通知
    STUDENT = "student"  # 学生 - 仅接收通知


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    # 学生乘坐的车辆；不加外键，vehicles.driver_id 已引用 users
    assigned_vehicle_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
