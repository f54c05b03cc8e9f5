"""
消息通知模型

寻址方式（receiver_role / receiver_id / metadata.intendedRole）:
- receiver_id 非空: 只发给该用户，receiver_role 为其角色
- receiver_id 为空: 发给持有 receiver_role 的所有用户；'all' 表示全体
- receiver_role='all' 且 metadata.intendedRole='admin': 仅管理员可见的抄送（admin copy）
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship

from fleet_notify.database import Base
from fleet_notify.models.user import UserRole

INTENDED_ROLE_KEY = "intendedRole"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationType(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"
    SUCCESS = "success"
    REMINDER = "reminder"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ReceiverRole(str, enum.Enum):
    ADMIN = "admin"
    DRIVER = "driver"
    STUDENT = "student"
    ALL = "all"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationType), nullable=False, default=NotificationType.INFO)
    priority = Column(Enum(NotificationPriority), nullable=False, default=NotificationPriority.MEDIUM)

    # 发送方（创建后不可变）
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_role = Column(Enum(UserRole), nullable=False)
    sender = relationship("User", foreign_keys=[sender_id])

    # 接收方
    receiver_role = Column(Enum(ReceiverRole), nullable=False)
    receiver_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)

    # 关联对象，仅供前端展示（如 vehicle）
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(Integer, nullable=True)

    meta = Column("metadata", JSON, nullable=False, default=dict)  # column name 'metadata' in DB

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("idx_notification_receiver_created", "receiver_id", "created_at"),
        Index("idx_notification_role_created", "receiver_role", "created_at"),
        Index("idx_notification_is_read", "is_read"),
    )

    def mark_as_read(self, when: datetime = None) -> bool:
        """标记为已读；已读则不变。返回是否发生了状态变化"""
        if self.is_read:
            return False
        self.is_read = True
        self.read_at = when or utc_now()
        return True

    def __repr__(self):
        return f"<Notification(id={self.id}, receiver={self.receiver_role}/{self.receiver_id}, title='{self.title}')>"
