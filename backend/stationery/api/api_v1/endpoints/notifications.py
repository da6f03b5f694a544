"""
通知 API
"""

from typing import Any
from fastapi import APIRouter, Depends, Query

from stationery.core.deps import get_caller, get_services
from stationery.domain.events import CallerContext
from stationery.schemas.notification import NotificationListResponse, NotificationResponse, NotificationSend
from stationery.services import PortalServices

router = APIRouter()


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    unread_only: bool = Query(False, description="只看未读"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)) -> Any:
    """获取当前用户可见的通知"""
    notifications, total = await services.notifications.list_for(
        caller, unread_only=unread_only, page=page, limit=limit
    )
    unread = await services.notifications.unread_count(caller)
    return NotificationListResponse(
        data=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread=unread,
        page=page,
        limit=limit
    )


@router.post("/", response_model=NotificationResponse, status_code=201)
async def send_notification(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    send_in: NotificationSend) -> Any:
    """发送系统通知 - 仅管理员"""
    notification = await services.notifications.send(
        caller,
        scope=send_in.scope,
        recipient_id=send_in.recipient_id,
        title=send_in.title,
        message=send_in.message,
        priority=send_in.priority,
    )
    return NotificationResponse.model_validate(notification)


@router.get("/unread-count")
async def get_unread_count(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller)) -> Any:
    """未读通知数量"""
    return {"count": await services.notifications.unread_count(caller)}


@router.post("/read-all")
async def mark_all_notifications_read(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller)) -> Any:
    """全部标记为已读"""
    updated = await services.notifications.mark_all_read(caller)
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    notification_id: int) -> Any:
    """标记单条通知为已读"""
    notification = await services.notifications.mark_read(caller, notification_id)
    return NotificationResponse.model_validate(notification)
