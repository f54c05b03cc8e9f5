"""
通知生命周期服务

负责通知的创建（含群发展开）、标记已读、全部已读与删除。
所有单条操作都先经过 access 判定再修改。
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fleet_notify.core.errors import (
    ForbiddenError,
    InternalError,
    NotFoundError,
    PartialFailureError,
)
from fleet_notify.logging_config import AlertLevel, log_alert
from fleet_notify.models.notification import (
    Notification,
    NotificationPriority,
    NotificationType,
    ReceiverRole,
    utc_now,
)
from fleet_notify.models.user import UserRole
from fleet_notify.services.access import Identity, can_delete, can_view
from fleet_notify.services.addressing import (
    AddressingResolver,
    BroadcastIntent,
    DirectIntent,
    Intent,
    NotificationDraft,
    TargetedByDriverIntent,
)
from fleet_notify.services.directory import FleetDirectory, UserDirectory
from fleet_notify.services.notification_query import NotificationQuery

logger = logging.getLogger(__name__)


class NotificationService:
    """通知生命周期管理"""

    def __init__(self, db: Session, resolver: Optional[AddressingResolver] = None):
        self.db = db
        self.query = NotificationQuery(db)
        self.resolver = resolver or AddressingResolver(UserDirectory(db), FleetDirectory(db))

    # --- 创建 ---

    def create(self, draft: NotificationDraft, sender: Identity) -> Notification:
        """写入单条草稿并提交"""
        notification = Notification(
            title=draft.title,
            message=draft.message,
            type=NotificationType(draft.type or NotificationType.INFO.value),
            priority=NotificationPriority(draft.priority or NotificationPriority.MEDIUM.value),
            sender_id=sender.id,
            sender_role=UserRole(sender.role),
            receiver_role=ReceiverRole(draft.receiver_role),
            receiver_id=draft.receiver_id,
            related_entity_type=draft.related_entity_type,
            related_entity_id=draft.related_entity_id,
            meta=dict(draft.metadata or {}),
            is_read=False,
            read_at=None,
            created_at=utc_now(),
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def create_many(self, drafts: List[NotificationDraft], sender: Identity) -> List[Notification]:
        """逐条写入；中途失败时已写入的保留，抛出 PartialFailureError"""
        created: List[Notification] = []
        created_ids: List[int] = []
        for index, draft in enumerate(drafts):
            try:
                notification = self.create(draft, sender)
            except SQLAlchemyError as e:
                self.db.rollback()
                log_alert(
                    logger,
                    AlertLevel.P1_URGENT,
                    "通知群发部分失败",
                    f"{len(created_ids)}/{len(drafts)} 条已写入，第 {index} 条失败: {e}",
                    context={
                        "sender_id": sender.id,
                        "created_ids": created_ids,
                        "failed_index": index,
                        "receiver_role": draft.receiver_role,
                        "receiver_id": draft.receiver_id,
                    },
                )
                if not created_ids:
                    raise InternalError() from e
                raise PartialFailureError(created_ids, total=len(drafts), failed_index=index, cause=e) from e
            created.append(notification)
            created_ids.append(notification.id)
        return created

    def send(self, sender: Identity, intent: Intent) -> List[Notification]:
        drafts = self.resolver.resolve(sender, intent)
        notifications = self.create_many(drafts, sender)
        logger.info(
            f"[Notify] 用户 {sender.id}({sender.role}) 发送 {type(intent).__name__}: "
            f"共写入 {len(notifications)} 条通知"
        )
        return notifications

    def send_direct(self, sender: Identity, intent: DirectIntent) -> Notification:
        return self.send(sender, intent)[0]

    def send_targeted(self, sender: Identity, intent: TargetedByDriverIntent) -> List[Notification]:
        return self.send(sender, intent)

    def send_broadcast(self, sender: Identity, intent: BroadcastIntent) -> List[Notification]:
        return self.send(sender, intent)

    # --- 读取 / 已读 / 删除 ---

    def _load(self, notification_id: int) -> Notification:
        notification = self.db.query(Notification).filter(Notification.id == notification_id).first()
        if notification is None:
            raise NotFoundError("Notification not found")
        return notification

    def get(self, notification_id: int, viewer: Identity) -> Notification:
        notification = self._load(notification_id)
        if not can_view(notification, viewer):
            raise ForbiddenError("Access denied to this notification")
        return notification

    def mark_read(self, notification_id: int, viewer: Identity) -> Notification:
        """标记单条已读；已读的通知保持原 read_at"""
        notification = self.get(notification_id, viewer)
        if notification.mark_as_read():
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, viewer: Identity) -> int:
        count = self.query.mark_all_read(viewer)
        self.db.commit()
        logger.info(f"[Notify] 用户 {viewer.id} 全部标记已读: {count} 条")
        return count

    def delete(self, notification_id: int, viewer: Identity) -> None:
        notification = self._load(notification_id)
        if not can_delete(notification, viewer):
            raise ForbiddenError("Access denied to delete this notification")
        self.db.delete(notification)
        self.db.commit()
        logger.info(f"[Notify] 用户 {viewer.id} 删除通知 {notification_id}")
