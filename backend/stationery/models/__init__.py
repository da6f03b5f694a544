# models包初始化文件

from stationery.models.product import Product
from stationery.models.order import Order, OrderItem
from stationery.models.order_flow import OrderFlow
from stationery.models.notification import (
    Notification, NotificationPriority, NotificationType, RecipientScope
)

__all__ = [
    "Product",
    "Order",
    "OrderItem",
    "OrderFlow",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "RecipientScope",
]
