"""
订单创建与查询
"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query

from stationery.core.deps import get_caller, get_services
from stationery.domain.events import CallerContext
from stationery.domain.status import OrderStatus
from stationery.schemas.order import OrderCreate, OrderListResponse, OrderResponse, OrderStatusInfo
from stationery.services import PortalServices

from .core import build_order_response

router = APIRouter()


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    department_id: Optional[int] = Query(None)) -> Any:
    """获取订单列表 - 非管理员只能查看本部门"""
    orders, total = await services.workflow.list_orders(
        caller, department_id=department_id, status=status, page=page, limit=limit
    )
    return OrderListResponse(
        data=[build_order_response(o) for o in orders],
        total=total,
        page=page,
        limit=limit
    )


@router.post("/", response_model=OrderResponse, status_code=201)
async def create_order(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    order_in: OrderCreate) -> Any:
    """购物车结算，创建订单（需下单窗口开放）"""
    order = await services.workflow.create(caller, order_in.items)
    return build_order_response(order)


@router.get("/current", response_model=Optional[OrderResponse])
async def get_current_order(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller)) -> Any:
    """本部门当前未完结的订单（没有则返回 null）"""
    order = await services.workflow.current_order(caller)
    return build_order_response(order) if order else None


@router.get("/awaiting-approval", response_model=OrderListResponse)
async def list_awaiting_approval(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)) -> Any:
    """待审批订单 - 仅管理员"""
    orders, total = await services.workflow.awaiting_approval(caller, page=page, limit=limit)
    return OrderListResponse(
        data=[build_order_response(o) for o in orders],
        total=total,
        page=page,
        limit=limit
    )


@router.get("/statuses", response_model=List[OrderStatusInfo])
async def list_statuses() -> Any:
    """订单状态说明"""
    return [
        OrderStatusInfo(
            code=status,
            display=status.display,
            progress=status.progress,
            description=status.description,
            terminal=status.is_terminal,
            next=[s for s in OrderStatus if status.can_transition_to(s)],
        )
        for status in OrderStatus
    ]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    order_id: int) -> Any:
    """订单详情（含明细与流程记录）"""
    order = await services.workflow.get(caller, order_id)
    return build_order_response(order)
