"""
通知模型

由 NotificationDispatcher 在订单流转后创建（type=order），或由管理员直接发送（type=system）；
之后只允许标记已读，不做其他修改。
"""

from enum import Enum
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Enum as SAEnum
from stationery.db.base import Base, utcnow


class RecipientScope(str, Enum):
    USER = "user"
    DEPARTMENT = "department"
    ADMINS = "admins"


class NotificationType(str, Enum):
    ORDER = "order"
    SYSTEM = "system"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    MEDIUM = "medium"
    HIGH = "high"


def _enum_column(enum_cls, name: str):
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda enum: [member.value for member in enum],
        validate_strings=True,
    )


class Notification(Base):
    """站内通知"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)

    # 接收范围：user（recipient_id=用户ID）、department（recipient_id=部门ID）、admins（recipient_id为空）
    recipient_scope = Column(_enum_column(RecipientScope, "recipient_scope"), nullable=False, index=True)
    recipient_id = Column(Integer, nullable=True, index=True)

    type = Column(_enum_column(NotificationType, "notification_type"), nullable=False, default=NotificationType.ORDER)
    priority = Column(_enum_column(NotificationPriority, "notification_priority"), nullable=False, default=NotificationPriority.NORMAL)

    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    read_at = Column(DateTime, nullable=True)

    # 扩展数据：orderId、orderNumber 等，字符串到字符串
    meta_data = Column(JSON, default=dict)

    def __repr__(self):
        return f"<Notification {self.id} → {self.recipient_scope.value}:{self.recipient_id} ({self.priority.value})>"
