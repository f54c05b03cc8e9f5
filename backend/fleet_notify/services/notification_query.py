"""
通知查询：按 viewer 生成可见范围过滤条件

list_filter 与 access.can_view 对任意 viewer 给出同一结果集，
列表、未读数、全部已读、统计都基于它。
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, or_
from sqlalchemy.orm import Session

from fleet_notify.config import settings
from fleet_notify.core.errors import ValidationError
from fleet_notify.models.notification import (
    INTENDED_ROLE_KEY,
    Notification,
    NotificationPriority,
    NotificationType,
    ReceiverRole,
    utc_now,
)
from fleet_notify.models.user import UserRole
from fleet_notify.services.access import Identity


def _coerce_positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


@dataclass
class NotificationPage:
    items: List[Notification]
    total: int
    page: int
    limit: int
    unread_count: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


@dataclass
class NotificationStats:
    total: int = 0
    unread: int = 0
    by_type: Dict[str, Dict[str, int]] = field(default_factory=dict)
    by_priority: Dict[str, Dict[str, int]] = field(default_factory=dict)


class NotificationQuery:
    """通知查询"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def list_filter(viewer: Identity):
        """viewer 可见通知的过滤表达式"""
        intended_role = Notification.meta[INTENDED_ROLE_KEY].as_string()
        clauses = [
            Notification.receiver_id == viewer.id,
            and_(
                Notification.receiver_id.is_(None),
                Notification.receiver_role == ReceiverRole(viewer.role),
            ),
            and_(
                Notification.receiver_id.is_(None),
                Notification.receiver_role == ReceiverRole.ALL,
                or_(intended_role.is_(None), intended_role == viewer.role),
            ),
        ]
        if viewer.is_admin:
            clauses.append(intended_role == UserRole.ADMIN.value)
        return or_(*clauses)

    def visible(self, viewer: Identity):
        return self.db.query(Notification).filter(self.list_filter(viewer))

    def list(
        self,
        viewer: Identity,
        is_read: Optional[bool] = None,
        type: Optional[str] = None,
        priority: Optional[str] = None,
        page: Any = 1,
        limit: Any = None,
    ) -> NotificationPage:
        """分页列表，按创建时间倒序"""
        page = _coerce_positive_int(page, 1)
        limit = min(_coerce_positive_int(limit, settings.DEFAULT_PAGE_SIZE), settings.MAX_PAGE_SIZE)

        query = self.visible(viewer)
        if is_read is not None:
            query = query.filter(Notification.is_read == is_read)
        if type:
            query = query.filter(Notification.type == _parse_enum(NotificationType, type, "type"))
        if priority:
            query = query.filter(Notification.priority == _parse_enum(NotificationPriority, priority, "priority"))

        total = query.count()
        items = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return NotificationPage(
            items=items,
            total=total,
            page=page,
            limit=limit,
            unread_count=self.unread_count(viewer),
        )

    def unread_count(self, viewer: Identity) -> int:
        return (
            self.db.query(func.count(Notification.id))
            .filter(self.list_filter(viewer), Notification.is_read.is_(False))
            .scalar()
            or 0
        )

    def mark_all_read(self, viewer: Identity, when: Optional[datetime] = None) -> int:
        """把 viewer 可见的未读通知全部置为已读，同一批次共用一个 read_at；不提交事务"""
        when = when or utc_now()
        return (
            self.db.query(Notification)
            .filter(self.list_filter(viewer), Notification.is_read.is_(False))
            .update({Notification.is_read: True, Notification.read_at: when}, synchronize_session=False)
        )

    def stats(self, viewer: Identity) -> NotificationStats:
        """按 type / priority 分组统计总数与未读数"""
        unread_expr = func.sum(case((Notification.is_read.is_(False), 1), else_=0))
        visible = self.list_filter(viewer)
        result = NotificationStats()

        type_rows = (
            self.db.query(Notification.type, func.count(Notification.id), unread_expr)
            .filter(visible)
            .group_by(Notification.type)
            .all()
        )
        for ntype, total, unread in type_rows:
            result.by_type[ntype.value] = {"total": total, "unread": int(unread or 0)}
            result.total += total
            result.unread += int(unread or 0)

        priority_rows = (
            self.db.query(Notification.priority, func.count(Notification.id), unread_expr)
            .filter(visible)
            .group_by(Notification.priority)
            .all()
        )
        for priority, total, unread in priority_rows:
            result.by_priority[priority.value] = {"total": total, "unread": int(unread or 0)}

        return result


def _parse_enum(enum_cls, value: str, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field_name} filter '{value}'")
