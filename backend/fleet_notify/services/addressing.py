"""
通知寻址解析

把一次发送意图（直达 / 司机定向 / 管理员群发）展开成若干条待写入的 NotificationDraft。
一次意图对应一组草稿，群发的部分失败只影响这一次发送。

管理员抄送（admin copy）的编码：receiver_role='all'、receiver_id=None、
metadata.intendedRole='admin'。
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from fleet_notify.core.errors import ForbiddenError, NotFoundError, ValidationError
from fleet_notify.models.notification import (
    INTENDED_ROLE_KEY,
    NotificationPriority,
    NotificationType,
    ReceiverRole,
)
from fleet_notify.models.user import UserRole
from fleet_notify.services.access import Identity
from fleet_notify.services.directory import FleetDirectory, UserDirectory

logger = logging.getLogger(__name__)

TARGET_STUDENTS = "students"
TARGET_ADMIN = "admin"
TARGET_TYPES = (TARGET_STUDENTS, TARGET_ADMIN)

RELATED_VEHICLE = "vehicle"
UNKNOWN_ROUTE = "Unknown Route"


def _enum_value(enum_cls, value, field_name: str) -> str:
    try:
        return enum_cls(getattr(value, "value", value)).value
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name} '{value}'. Must be one of: {allowed}")


@dataclass
class NotificationContent:
    """发送方填写的内容（各意图共用）"""
    title: str
    message: str
    type: Optional[str] = None
    priority: Optional[str] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None

    def validated(self) -> "NotificationContent":
        title = (self.title or "").strip()
        message = (self.message or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if not message:
            raise ValidationError("Message is required")
        return NotificationContent(
            title=title,
            message=message,
            type=_enum_value(NotificationType, self.type or NotificationType.INFO, "type"),
            priority=_enum_value(NotificationPriority, self.priority or NotificationPriority.MEDIUM, "priority"),
            related_entity_type=self.related_entity_type,
            related_entity_id=self.related_entity_id,
        )


@dataclass
class NotificationDraft:
    """尚未写入的寻址结果"""
    title: str
    message: str
    receiver_role: str
    receiver_id: Optional[int] = None
    type: str = NotificationType.INFO.value
    priority: str = NotificationPriority.MEDIUM.value
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin_copy(self) -> bool:
        return (
            self.receiver_role == ReceiverRole.ALL.value
            and self.receiver_id is None
            and self.metadata.get(INTENDED_ROLE_KEY) == UserRole.ADMIN.value
        )


@dataclass
class DirectIntent:
    content: NotificationContent
    receiver_role: str
    receiver_id: Optional[int] = None


@dataclass
class TargetedByDriverIntent:
    content: NotificationContent
    target_type: str


@dataclass
class BroadcastIntent:
    content: NotificationContent
    target_roles: Iterable[str]


Intent = Union[DirectIntent, TargetedByDriverIntent, BroadcastIntent]


class AddressingResolver:
    """发送意图 -> 草稿列表"""

    def __init__(self, users: UserDirectory, fleet: FleetDirectory):
        self.users = users
        self.fleet = fleet

    def resolve(self, sender: Identity, intent: Intent) -> List[NotificationDraft]:
        if isinstance(intent, DirectIntent):
            return self._resolve_direct(sender, intent)
        if isinstance(intent, TargetedByDriverIntent):
            return self._resolve_targeted(sender, intent)
        if isinstance(intent, BroadcastIntent):
            return self._resolve_broadcast(sender, intent)
        raise ValidationError(f"Unsupported notification intent: {type(intent).__name__}")

    # --- 直达 ---

    def _resolve_direct(self, sender: Identity, intent: DirectIntent) -> List[NotificationDraft]:
        if sender.role not in (UserRole.ADMIN.value, UserRole.DRIVER.value):
            raise ForbiddenError("Only admins and drivers can send notifications")

        receiver_role = _enum_value(ReceiverRole, intent.receiver_role, "receiver role")
        if receiver_role == ReceiverRole.ADMIN.value and not sender.is_admin:
            raise ForbiddenError("Only admins can send notifications to other admins")

        content = intent.content.validated()

        if intent.receiver_id is not None:
            if receiver_role == ReceiverRole.ALL.value:
                raise ValidationError("A specific receiver cannot be combined with receiver role 'all'")
            receiver = self.users.find_by_id(intent.receiver_id)
            if receiver is None:
                raise NotFoundError("Receiver not found")
            if receiver.role != receiver_role:
                raise ValidationError("Receiver role does not match specified role")

        return [
            NotificationDraft(
                title=content.title,
                message=content.message,
                type=content.type,
                priority=content.priority,
                receiver_role=receiver_role,
                receiver_id=intent.receiver_id,
                related_entity_type=content.related_entity_type,
                related_entity_id=content.related_entity_id,
            )
        ]

    # --- 司机定向 ---

    def _resolve_targeted(self, sender: Identity, intent: TargetedByDriverIntent) -> List[NotificationDraft]:
        if sender.role != UserRole.DRIVER.value:
            raise ForbiddenError("Only drivers can send targeted notifications")
        if intent.target_type not in TARGET_TYPES:
            raise ValidationError('Invalid target type. Must be "students" or "admin"')

        content = intent.content.validated()
        attributed_title = f"[Driver: {sender.name}] {content.title}"

        if intent.target_type == TARGET_ADMIN:
            return [
                NotificationDraft(
                    title=attributed_title,
                    message=content.message,
                    type=content.type,
                    priority=content.priority,
                    receiver_role=ReceiverRole.ALL.value,
                    receiver_id=None,
                    related_entity_type=content.related_entity_type,
                    related_entity_id=content.related_entity_id,
                    metadata={
                        INTENDED_ROLE_KEY: UserRole.ADMIN.value,
                        "driverName": sender.name,
                    },
                )
            ]

        vehicle = self.fleet.find_vehicle_by_driver(sender.id)
        if vehicle is None:
            raise NotFoundError("No vehicle assigned to you")

        students = self.fleet.find_students_by_vehicle(vehicle.id)
        route_name = vehicle.route_name or UNKNOWN_ROUTE
        logger.info(f"[Notify] 司机 {sender.id} 定向发送: 车辆 {vehicle.number} 共 {len(students)} 名学生")

        drafts = [
            NotificationDraft(
                title=content.title,
                message=content.message,
                type=content.type,
                priority=content.priority,
                receiver_role=ReceiverRole.STUDENT.value,
                receiver_id=student.id,
                related_entity_type=RELATED_VEHICLE,
                related_entity_id=vehicle.id,
                metadata={"vehicleNumber": vehicle.number, "routeName": route_name},
            )
            for student in students
        ]

        drafts.append(
            NotificationDraft(
                title=attributed_title,
                message=f"To students on vehicle {vehicle.number}: {content.message}",
                type=NotificationType.INFO.value,
                priority=content.priority,
                receiver_role=ReceiverRole.ALL.value,
                receiver_id=None,
                related_entity_type=RELATED_VEHICLE,
                related_entity_id=vehicle.id,
                metadata={
                    INTENDED_ROLE_KEY: UserRole.ADMIN.value,
                    "originalTarget": TARGET_STUDENTS,
                    "vehicleNumber": vehicle.number,
                    "routeName": route_name,
                    "studentCount": len(students),
                },
            )
        )
        return drafts

    # --- 管理员群发 ---

    def _resolve_broadcast(self, sender: Identity, intent: BroadcastIntent) -> List[NotificationDraft]:
        if not sender.is_admin:
            raise ForbiddenError("Only admins can broadcast notifications")

        roles: List[str] = []
        for role in intent.target_roles or []:
            value = _enum_value(ReceiverRole, role, "target role")
            if value not in roles:
                roles.append(value)
        if not roles:
            raise ValidationError("Target roles are required for broadcast")

        content = intent.content.validated()
        return [
            NotificationDraft(
                title=content.title,
                message=content.message,
                type=content.type,
                priority=content.priority,
                receiver_role=role,
                receiver_id=None,
                related_entity_type=content.related_entity_type,
                related_entity_id=content.related_entity_id,
            )
            for role in roles
        ]
