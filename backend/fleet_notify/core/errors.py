"""
通知业务异常与 HTTP 映射

服务层只抛出 NotificationError 子类，路由层统一通过 notification_error_to_http 转换，
保证 NotFound / Forbidden / ValidationError / 内部错误在传输层可区分。
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, status

MSG_INTERNAL_ERROR = "Internal server error"


class NotificationError(Exception):
    """通知业务异常基类"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_payload(self) -> dict[str, Any]:
        return {"detail": self.detail, "error": type(self).__name__}


class ValidationError(NotificationError):
    """字段缺失/格式错误、角色不匹配、目标角色为空"""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(NotificationError):
    """通知、用户或车辆不存在"""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(NotificationError):
    """访问判定或发送角色校验未通过"""

    status_code = status.HTTP_403_FORBIDDEN


class InternalError(NotificationError):
    """协作方（数据库等）故障；detail 不含内部细节"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = MSG_INTERNAL_ERROR):
        super().__init__(detail)


class PartialFailureError(NotificationError):
    """群发时部分通知已写入、其中一条失败；已写入的不回滚"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        created_ids: list[int],
        total: int,
        failed_index: int,
        cause: Optional[BaseException] = None,
    ):
        # 只保存 id：回滚后 ORM 对象已过期，数据库不可用时无法再读取
        self.created_ids = list(created_ids)
        self.total = total
        self.failed_index = failed_index
        self.cause = cause
        super().__init__(
            f"Notification fan-out partially failed: {len(self.created_ids)} of {total} created, "
            f"draft #{failed_index} failed"
        )

    @property
    def created_count(self) -> int:
        return len(self.created_ids)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload.update({
            "created_count": self.created_count,
            "total": self.total,
            "failed_index": self.failed_index,
            "created_ids": list(self.created_ids),
        })
        return payload


def notification_error_to_http(exc: NotificationError) -> HTTPException:
    """将业务异常映射为 HTTPException"""
    if isinstance(exc, PartialFailureError):
        return HTTPException(status_code=exc.status_code, detail=exc.to_payload())
    return HTTPException(status_code=exc.status_code, detail=exc.detail)
