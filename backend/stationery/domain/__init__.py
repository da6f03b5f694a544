# 领域对象：订单状态、购物车、流转事件（不依赖数据库）

from stationery.domain.status import OrderStatus, TRANSITIONS, TERMINAL_STATUSES
from stationery.domain.cart import Cart, CartLine
from stationery.domain.events import CallerContext, TransitionEvent, WindowChange, EventBus

__all__ = [
    "OrderStatus",
    "TRANSITIONS",
    "TERMINAL_STATUSES",
    "Cart",
    "CartLine",
    "CallerContext",
    "TransitionEvent",
    "WindowChange",
    "EventBus",
]
