"""
通知访问判定

查看/标记已读/删除共用同一个 can_view 判定；删除在此之上额外允许管理员。

可见规则（满足任一即可）：
- receiver_id == viewer.id（直达，和角色无关）
- receiver_id 为空且 receiver_role == viewer.role
- receiver_id 为空且 receiver_role == 'all' 且（未设置 intendedRole 或 intendedRole == viewer.role）
- viewer 是管理员且 intendedRole == 'admin'

指定了 receiver_id 的通知只属于该用户，同角色的其他用户不可见。
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from fleet_notify.models.notification import INTENDED_ROLE_KEY, ReceiverRole
from fleet_notify.models.user import UserRole


def _role_value(role) -> Optional[str]:
    if role is None:
        return None
    return getattr(role, "value", str(role))


@dataclass(frozen=True)
class Identity:
    """当前操作者（id + 角色），由认证层提供"""
    id: int
    role: str
    name: str = ""

    @classmethod
    def from_user(cls, user) -> "Identity":
        return cls(id=user.id, role=_role_value(user.role), name=getattr(user, "name", "") or "")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def _intended_role(metadata: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not metadata:
        return None
    return metadata.get(INTENDED_ROLE_KEY)


def can_view(notification, viewer: Identity) -> bool:
    """viewer 能否查看（及标记已读）该通知"""
    if notification.receiver_id is not None:
        if notification.receiver_id == viewer.id:
            return True
    else:
        # 角色寻址只对没有指定 receiver_id 的通知生效
        receiver_role = _role_value(notification.receiver_role)
        if receiver_role == viewer.role:
            return True
        if receiver_role == ReceiverRole.ALL.value and _intended_role(notification.meta) in (None, viewer.role):
            return True

    return viewer.is_admin and _intended_role(notification.meta) == UserRole.ADMIN.value


def can_delete(notification, viewer: Identity) -> bool:
    """删除：可见即可删，管理员总是可删"""
    return can_view(notification, viewer) or viewer.is_admin
