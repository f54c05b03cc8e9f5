"""
车辆模型（校车）
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func

from fleet_notify.database import Base


class Vehicle(Base):
    """车辆表：一名司机对应一辆车"""
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(String(20), unique=True, nullable=False)  # 车牌/车号，如 'BUS-07'
    route_name = Column(String(100), nullable=True)
    driver_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Vehicle {self.number}: {self.route_name}>"
