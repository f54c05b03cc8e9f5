"""
消息通知 API

可见范围由 services.access / services.notification_query 统一判定；
业务异常统一通过 notification_error_to_http 转换为 HTTP 状态码。
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fleet_notify.core.errors import (
    MSG_INTERNAL_ERROR,
    NotificationError,
    notification_error_to_http,
)
from fleet_notify.database import get_db
from fleet_notify.middleware.auth import (
    get_current_admin,
    get_current_admin_or_driver,
    get_current_identity,
)
from fleet_notify.schemas.notification import (
    BroadcastNotificationCreate,
    DirectNotificationCreate,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatsResponse,
    Pagination,
    SendResultResponse,
    TargetedNotificationCreate,
)
from fleet_notify.services.access import Identity
from fleet_notify.services.addressing import TARGET_STUDENTS
from fleet_notify.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _run(action, *args, **kwargs):
    """执行服务调用，把业务异常与数据库异常转换为 HTTPException"""
    try:
        return action(*args, **kwargs)
    except NotificationError as e:
        raise notification_error_to_http(e)
    except SQLAlchemyError as e:
        logger.error(f"[Notify] 数据库异常: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=MSG_INTERNAL_ERROR)


def _to_response(notification) -> NotificationResponse:
    return NotificationResponse.model_validate(notification)


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    is_read: Optional[bool] = Query(None, description="按已读状态过滤"),
    type: Optional[str] = Query(None, description="按类型过滤"),
    priority: Optional[str] = Query(None, description="按优先级过滤"),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """获取通知列表（分页，按可见范围过滤，创建时间倒序）"""
    service = NotificationService(db)
    result = _run(
        service.query.list,
        viewer,
        is_read=is_read,
        type=type,
        priority=priority,
        page=page,
        limit=limit,
    )
    return NotificationListResponse(
        items=[_to_response(n) for n in result.items],
        pagination=Pagination(current=result.page, pages=result.pages, total=result.total, limit=result.limit),
        unread_count=result.unread_count,
    )


@router.get("/stats", response_model=NotificationStatsResponse)
def get_notification_stats(
    viewer: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """按类型、优先级统计总数与未读数"""
    stats = _run(NotificationService(db).query.stats, viewer)
    return NotificationStatsResponse(
        total=stats.total,
        unread=stats.unread,
        by_type=stats.by_type,
        by_priority=stats.by_priority,
    )


@router.get("/unread-count", response_model=dict)
def get_unread_count(
    viewer: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """获取未读数量（铃铛角标）"""
    return {"count": _run(NotificationService(db).query.unread_count, viewer)}


@router.put("/mark-all-read", response_model=dict)
def mark_all_read(
    viewer: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """全部标记已读（仅限可见范围内的通知）"""
    count = _run(NotificationService(db).mark_all_read, viewer)
    return {"message": f"{count} notifications marked as read", "count": count}


@router.get("/{notification_id}", response_model=NotificationResponse)
def get_notification(
    notification_id: int,
    viewer: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """获取单条通知"""
    return _to_response(_run(NotificationService(db).get, notification_id, viewer))


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: int,
    viewer: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """标记单条为已读（重复标记不报错）"""
    return _to_response(_run(NotificationService(db).mark_read, notification_id, viewer))


@router.delete("/{notification_id}", response_model=dict)
def delete_notification(
    notification_id: int,
    viewer: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """删除通知"""
    _run(NotificationService(db).delete, notification_id, viewer)
    return {"message": "Notification deleted successfully"}


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def create_notification(
    body: DirectNotificationCreate,
    sender: Identity = Depends(get_current_admin_or_driver),
    db: Session = Depends(get_db),
):
    """直达发送（管理员或司机）"""
    return _to_response(_run(NotificationService(db).send_direct, sender, body.to_intent()))


@router.post("/targeted", response_model=SendResultResponse, status_code=status.HTTP_201_CREATED)
def send_targeted_notification(
    body: TargetedNotificationCreate,
    sender: Identity = Depends(get_current_admin_or_driver),
    db: Session = Depends(get_db),
):
    """司机定向发送：本车学生（附管理员抄送）或管理员"""
    notifications = _run(NotificationService(db).send_targeted, sender, body.to_intent())
    message = f"Notification sent to {len(notifications)} recipient(s)"
    if body.target_type == TARGET_STUDENTS:
        message += f" ({len(notifications) - 1} students + 1 admin copy)"
    return SendResultResponse(
        message=message,
        count=len(notifications),
        items=[_to_response(n) for n in notifications],
    )


@router.post("/broadcast", response_model=SendResultResponse, status_code=status.HTTP_201_CREATED)
def broadcast_notification(
    body: BroadcastNotificationCreate,
    sender: Identity = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """管理员按角色群发"""
    notifications = _run(NotificationService(db).send_broadcast, sender, body.to_intent())
    return SendResultResponse(
        message=f"Broadcast notification sent to {len(notifications)} role(s)",
        count=len(notifications),
        items=[_to_response(n) for n in notifications],
    )
