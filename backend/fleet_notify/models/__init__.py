"""
数据模型
"""
from fleet_notify.models.user import User, UserRole
from fleet_notify.models.vehicle import Vehicle
from fleet_notify.models.notification import (
    Notification,
    NotificationPriority,
    NotificationType,
    ReceiverRole,
)

__all__ = [
    "User",
    "UserRole",
    "Vehicle",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "ReceiverRole",
]
