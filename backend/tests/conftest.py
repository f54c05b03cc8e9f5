"""
测试夹具：内存 SQLite + 演示用户/车辆
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import fleet_notify.models  # noqa: F401  注册所有模型
from fleet_notify.database import Base
from fleet_notify.models.user import User, UserRole
from fleet_notify.models.vehicle import Vehicle
from fleet_notify.services.access import Identity


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    yield session
    session.close()


def make_user(db, username, role, vehicle_id=None):
    user = User(
        username=username,
        name=username.capitalize(),
        role=role,
        password_hash="not-used",
        assigned_vehicle_id=vehicle_id,
    )
    db.add(user)
    db.flush()
    return user


class Fleet:
    """一个管理员团队、两名司机（一名有车）、三名本车学生和一名其他学生"""

    def __init__(self, db):
        self.admin = make_user(db, "admin", UserRole.ADMIN)
        self.admin2 = make_user(db, "admin2", UserRole.ADMIN)
        self.driver = make_user(db, "driver", UserRole.DRIVER)
        self.idle_driver = make_user(db, "idledriver", UserRole.DRIVER)

        self.vehicle = Vehicle(number="BUS-07", route_name="North Loop", driver_id=self.driver.id)
        db.add(self.vehicle)
        db.flush()

        self.students = [
            make_user(db, f"student{i}", UserRole.STUDENT, vehicle_id=self.vehicle.id)
            for i in range(1, 4)
        ]
        self.other_student = make_user(db, "walker", UserRole.STUDENT)
        db.commit()

    def identity(self, user) -> Identity:
        return Identity.from_user(user)

    @property
    def everyone(self):
        return [self.admin, self.admin2, self.driver, self.idle_driver, *self.students, self.other_student]


@pytest.fixture
def fleet(db):
    return Fleet(db)
