"""
订单核心功能模块
- 响应构建
"""

from stationery.models.order import Order
from stationery.schemas.order import OrderResponse, OrderItemResponse, OrderFlowResponse


def build_order_response(order: Order) -> OrderResponse:
    """构建订单响应"""
    return OrderResponse(
        id=order.id,
        order_no=order.order_no,
        department_id=order.department_id,
        created_by=order.created_by,
        status=order.status,
        status_display=order.status_display,
        progress=order.progress,
        admin_comment=order.admin_comment,
        resolved_by=order.resolved_by,
        has_unsigned_document=bool(order.unsigned_document_ref),
        has_signed_document=bool(order.signed_document_ref),
        total_quantity=order.total_quantity,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[OrderItemResponse.model_validate(item) for item in order.items],
        flows=[OrderFlowResponse.model_validate(flow) for flow in order.flows],
    )
