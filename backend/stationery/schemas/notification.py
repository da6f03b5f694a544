"""通知 Schema"""

from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field

from stationery.models.notification import NotificationPriority, NotificationType, RecipientScope


class NotificationResponse(BaseModel):
    """通知响应"""
    id: int
    recipient_scope: RecipientScope
    recipient_id: Optional[int] = None
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    read: bool
    created_at: datetime
    read_at: Optional[datetime] = None
    meta_data: Dict[str, str] = {}

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    """通知列表响应"""
    data: List[NotificationResponse]
    total: int
    unread: int
    page: int
    limit: int


class NotificationSend(BaseModel):
    """管理员发送系统通知"""
    scope: RecipientScope = Field(..., description="user / department / admins")
    recipient_id: Optional[int] = Field(None, description="用户ID或部门ID；admins 时忽略")
    title: str = ""
    message: str = ""
    priority: NotificationPriority = NotificationPriority.NORMAL
