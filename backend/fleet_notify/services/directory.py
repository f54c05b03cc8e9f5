"""
用户目录与车队目录

寻址解析依赖的外部协作方，基于 SQLAlchemy 查询实现。
"""
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from fleet_notify.models.user import User, UserRole
from fleet_notify.models.vehicle import Vehicle


@dataclass(frozen=True)
class DirectoryUser:
    id: int
    role: str
    name: str = ""


@dataclass(frozen=True)
class VehicleInfo:
    id: int
    number: str
    route_name: Optional[str] = None


class UserDirectory:
    """用户目录"""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, user_id: int) -> Optional[DirectoryUser]:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            return None
        return DirectoryUser(id=user.id, role=UserRole(user.role).value, name=user.name)


class FleetDirectory:
    """车队目录：司机 -> 车辆 -> 学生"""

    def __init__(self, db: Session):
        self.db = db

    def find_vehicle_by_driver(self, driver_id: int) -> Optional[VehicleInfo]:
        vehicle = self.db.query(Vehicle).filter(Vehicle.driver_id == driver_id).first()
        if vehicle is None:
            return None
        return VehicleInfo(id=vehicle.id, number=vehicle.number, route_name=vehicle.route_name)

    def find_students_by_vehicle(self, vehicle_id: int) -> List[DirectoryUser]:
        rows = (
            self.db.query(User)
            .filter(User.role == UserRole.STUDENT, User.assigned_vehicle_id == vehicle_id)
            .order_by(User.id)
            .all()
        )
        return [DirectoryUser(id=u.id, role=UserRole.STUDENT.value, name=u.name) for u in rows]
