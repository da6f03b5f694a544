"""订单Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime

from stationery.domain.status import OrderStatus


# ===== 明细 =====
class OrderItemCreate(BaseModel):
    """明细（购物车中的一行）"""
    product_id: int = Field(..., description="商品ID")
    quantity: int = Field(..., description="数量（至少为1，由订单流程校验）")


class OrderItemResponse(BaseModel):
    id: int
    line_no: int
    product_id: int
    product_name: Optional[str] = None
    unit: Optional[str] = None
    quantity: int

    class Config:
        from_attributes = True


# ===== 流程 =====
class OrderFlowResponse(BaseModel):
    """流程记录响应"""
    id: int
    from_status: Optional[OrderStatus] = None
    to_status: OrderStatus
    type_display: str = ""
    actor_id: int
    comment: Optional[str] = None
    operated_at: datetime

    class Config:
        from_attributes = True


# ===== 订单 =====
class OrderCreate(BaseModel):
    """创建订单（购物车结算）"""
    # 空明细由订单流程判定（先判断下单窗口）
    items: List[OrderItemCreate] = Field(default_factory=list, description="明细列表")


class OrderReject(BaseModel):
    comment: Optional[str] = Field(None, description="驳回意见（必填，由审批流程校验）")


class OrderApprove(BaseModel):
    comment: Optional[str] = Field(None, description="审批意见（可选）")


class OrderResponse(BaseModel):
    """订单响应"""
    id: int
    order_no: str
    department_id: int
    created_by: int
    status: OrderStatus
    status_display: str = ""
    progress: int = 0
    admin_comment: Optional[str] = None
    resolved_by: Optional[int] = None
    has_unsigned_document: bool = False
    has_signed_document: bool = False
    total_quantity: int = 0
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []
    flows: List[OrderFlowResponse] = []


class OrderListResponse(BaseModel):
    """订单列表响应"""
    data: List[OrderResponse]
    total: int
    page: int
    limit: int


class OrderStatusInfo(BaseModel):
    """状态说明（前端进度条用）"""
    code: OrderStatus
    display: str
    progress: int
    description: str
    terminal: bool
    next: List[OrderStatus]
