"""V1 API 路由聚合"""
from fastapi import APIRouter

from stationery.api.api_v1.endpoints import notifications, order_window
from stationery.api.api_v1.endpoints.orders import router as orders_router

api_router = APIRouter()

# 订单
api_router.include_router(orders_router, prefix="/orders", tags=["订单"])

# 下单窗口
api_router.include_router(order_window.router, prefix="/order-window", tags=["下单窗口"])

# 通知
api_router.include_router(notifications.router, prefix="/notifications", tags=["通知"])
