"""
初始化数据库并写入演示账户
"""
import sys
import os

# 添加项目根目录到 Python 路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fleet_notify.database import SessionLocal, init_db
from fleet_notify.middleware.auth import get_password_hash
from fleet_notify.models.user import User, UserRole
from fleet_notify.models.vehicle import Vehicle

DEFAULT_PASSWORD = "fleet123456"


def _get_or_create_user(db, username: str, name: str, role: UserRole) -> User:
    user = db.query(User).filter(User.username == username).first()
    if user:
        print(f"用户已存在：{username}")
        return user
    user = User(
        username=username,
        name=name,
        role=role,
        password_hash=get_password_hash(DEFAULT_PASSWORD),
    )
    db.add(user)
    db.flush()
    print(f"创建账户：{username} ({role.value}) / {DEFAULT_PASSWORD}")
    return user


def seed_demo_data():
    """创建 1 个管理员、1 个司机（含车辆）和 3 个学生"""
    db = SessionLocal()
    try:
        _get_or_create_user(db, "admin", "Administrator", UserRole.ADMIN)
        driver = _get_or_create_user(db, "driver01", "Driver 01", UserRole.DRIVER)

        vehicle = db.query(Vehicle).filter(Vehicle.driver_id == driver.id).first()
        if vehicle is None:
            vehicle = Vehicle(number="BUS-01", route_name="North Route", driver_id=driver.id)
            db.add(vehicle)
            db.flush()
            print(f"创建车辆：{vehicle.number}")

        for i in range(1, 4):
            student = _get_or_create_user(db, f"student{i:02d}", f"Student {i:02d}", UserRole.STUDENT)
            student.assigned_vehicle_id = vehicle.id

        db.commit()
        print("\n初始化完成！")
        print("⚠️  请立即修改默认密码！")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    print("数据库表创建完成！")
    seed_demo_data()
