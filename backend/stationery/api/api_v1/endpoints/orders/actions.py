"""
订单状态流转操作模块
- 导出申领单、上传签字单据、提交审批
- 审批通过 / 驳回
- 单据下载
"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response

from stationery.core.deps import get_caller, get_services
from stationery.domain.events import CallerContext
from stationery.schemas.order import OrderApprove, OrderReject, OrderResponse
from stationery.services import PortalServices

from .core import build_order_response

router = APIRouter()


@router.post("/{order_id}/export", response_model=OrderResponse)
async def export_order(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    order_id: int) -> Any:
    """导出申领单PDF：待导出 → 已导出"""
    order = await services.documents.export(caller, order_id)
    return build_order_response(order)


@router.post("/{order_id}/signed", response_model=OrderResponse)
async def upload_signed_document(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    order_id: int,
    file: UploadFile = File(...)) -> Any:
    """上传签字后的申领单：已导出 → 已上传"""
    data = await file.read()
    order = await services.documents.upload_signed(caller, order_id, data, file.content_type)
    return build_order_response(order)


@router.post("/{order_id}/submit", response_model=OrderResponse)
async def submit_order(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    order_id: int) -> Any:
    """提交审批：已上传 → 待审批"""
    order = await services.workflow.submit(caller, order_id)
    return build_order_response(order)


@router.post("/{order_id}/approve", response_model=OrderResponse)
async def approve_order(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    order_id: int,
    approve_in: Optional[OrderApprove] = None) -> Any:
    """审批通过 - 仅管理员"""
    comment = approve_in.comment if approve_in else None
    order = await services.approvals.approve(caller, order_id, comment)
    return build_order_response(order)


@router.post("/{order_id}/reject", response_model=OrderResponse)
async def reject_order(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    order_id: int,
    reject_in: Optional[OrderReject] = None) -> Any:
    """审批驳回 - 仅管理员，意见必填"""
    comment = reject_in.comment if reject_in else None
    order = await services.approvals.reject(caller, order_id, comment)
    return build_order_response(order)


@router.get("/{order_id}/documents/unsigned")
async def download_unsigned_document(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    order_id: int) -> Any:
    """下载导出的申领单"""
    data = await services.documents.fetch_unsigned(caller, order_id)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="order-{order_id}.pdf"'},
    )


@router.get("/{order_id}/documents/signed")
async def download_signed_document(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    order_id: int) -> Any:
    """下载已签字单据"""
    data = await services.documents.fetch_signed(caller, order_id)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="order-{order_id}-signed.pdf"'},
    )
