"""
通知相关的Pydantic模型
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from fleet_notify.models.notification import NotificationPriority, NotificationType, ReceiverRole
from fleet_notify.models.user import UserRole
from fleet_notify.schemas.user import UserSummary
from fleet_notify.services.addressing import (
    BroadcastIntent,
    DirectIntent,
    NotificationContent,
    TargetedByDriverIntent,
)


class RelatedEntity(BaseModel):
    type: str
    id: int


class NotificationContentBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.MEDIUM

    def to_content(self, related_entity: Optional[RelatedEntity] = None) -> NotificationContent:
        return NotificationContent(
            title=self.title,
            message=self.message,
            type=self.type.value,
            priority=self.priority.value,
            related_entity_type=related_entity.type if related_entity else None,
            related_entity_id=related_entity.id if related_entity else None,
        )


class DirectNotificationCreate(NotificationContentBase):
    receiver_role: ReceiverRole
    receiver_id: Optional[int] = None
    related_entity: Optional[RelatedEntity] = None

    def to_intent(self) -> DirectIntent:
        return DirectIntent(
            content=self.to_content(self.related_entity),
            receiver_role=self.receiver_role.value,
            receiver_id=self.receiver_id,
        )


class TargetedNotificationCreate(NotificationContentBase):
    target_type: str = Field(..., description='"students" 或 "admin"')

    def to_intent(self) -> TargetedByDriverIntent:
        return TargetedByDriverIntent(content=self.to_content(), target_type=self.target_type)


class BroadcastNotificationCreate(NotificationContentBase):
    target_roles: List[ReceiverRole] = Field(default_factory=list)

    def to_intent(self) -> BroadcastIntent:
        return BroadcastIntent(
            content=self.to_content(),
            target_roles=[role.value for role in self.target_roles],
        )


class NotificationResponse(BaseModel):
    id: int
    title: str
    message: str
    type: NotificationType
    priority: NotificationPriority
    sender_id: int
    sender_role: UserRole
    sender: Optional[UserSummary] = None
    receiver_role: ReceiverRole
    receiver_id: Optional[int] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("meta", "metadata"))
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class Pagination(BaseModel):
    current: int
    pages: int
    total: int
    limit: int


class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]
    pagination: Pagination
    unread_count: int


class SendResultResponse(BaseModel):
    message: str
    count: int
    items: List[NotificationResponse]


class StatsBucket(BaseModel):
    total: int
    unread: int


class NotificationStatsResponse(BaseModel):
    total: int
    unread: int
    by_type: Dict[str, StatsBucket]
    by_priority: Dict[str, StatsBucket]
