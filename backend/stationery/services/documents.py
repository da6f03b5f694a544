"""
单据交换 - 导出申领单 / 上传签字单据

export：pending 订单渲染为PDF并保存，然后流转到 exported
upload_signed：exported 订单上传签字后的PDF（只校验文件类型，不做OCR或签名验证），流转到 uploaded

渲染和存储都在流转之前完成；流转失败时删除刚保存的文件，订单保持原状态，可安全重试。
"""
from __future__ import annotations

import asyncio
import io
import logging
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfgen import canvas

from stationery.core.exceptions import InvalidPayload, NotFound
from stationery.domain.events import CallerContext
from stationery.models.order import Order
from stationery.services.collaborators import FileStorage
from stationery.services.order_workflow import OrderWorkflow

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"
PDF_CONTENT_TYPES = ("application/pdf", "application/x-pdf")

# 内置中文字体，无需字体文件
FONT_NAME = "STSong-Light"
pdfmetrics.registerFont(UnicodeCIDFont(FONT_NAME))

W, H = A4
MARGIN = 20 * mm
ROW_HEIGHT = 8 * mm


def render_order_pdf(order: Order) -> bytes:
    """按订单快照渲染申领单

    invariant=1 去掉时间戳等随机内容，同一快照多次渲染结果完全相同。
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    c.setTitle(f"文具申领单 {order.order_no}")
    c.setAuthor("文具申领系统")

    def header(y: float) -> float:
        c.setFont(FONT_NAME, 18)
        c.drawCentredString(W / 2, y, "文具申领单")
        y -= 12 * mm
        c.setFont(FONT_NAME, 10)
        c.drawString(MARGIN, y, f"订单号：{order.order_no}")
        c.drawRightString(W - MARGIN, y, f"日期：{order.created_at:%Y-%m-%d}")
        y -= 6 * mm
        c.drawString(MARGIN, y, f"部门：{order.department_id}")
        c.drawRightString(W - MARGIN, y, f"申请人：{order.created_by}")
        y -= 10 * mm
        c.setFont(FONT_NAME, 10)
        c.drawString(MARGIN, y, "序号")
        c.drawString(MARGIN + 15 * mm, y, "商品ID")
        c.drawString(MARGIN + 35 * mm, y, "品名")
        c.drawString(W - MARGIN - 40 * mm, y, "单位")
        c.drawRightString(W - MARGIN, y, "数量")
        y -= 2 * mm
        c.line(MARGIN, y, W - MARGIN, y)
        return y - ROW_HEIGHT + 2 * mm

    y = header(H - MARGIN)
    for item in order.items:
        if y < MARGIN + 50 * mm:
            c.showPage()
            y = header(H - MARGIN)
        c.drawString(MARGIN, y, str(item.line_no))
        c.drawString(MARGIN + 15 * mm, y, str(item.product_id))
        c.drawString(MARGIN + 35 * mm, y, item.product_name or "")
        c.drawString(W - MARGIN - 40 * mm, y, item.unit or "")
        c.drawRightString(W - MARGIN, y, str(item.quantity))
        y -= ROW_HEIGHT

    c.line(MARGIN, y + ROW_HEIGHT - 2 * mm, W - MARGIN, y + ROW_HEIGHT - 2 * mm)
    c.drawRightString(W - MARGIN, y, f"合计数量：{order.total_quantity}")

    # 签字栏
    y -= 25 * mm
    c.drawString(MARGIN, y, "申请人签字：________________")
    c.drawString(W / 2, y, "部门负责人签字：________________")
    y -= 12 * mm
    c.drawString(MARGIN, y, "日期：________________")

    c.showPage()
    c.save()
    return buffer.getvalue()


def validate_signed_pdf(data: bytes, content_type: Optional[str], max_bytes: int) -> None:
    """校验上传文件：非空、大小、内容类型、PDF文件头"""
    if not data:
        raise InvalidPayload("签字单据不能为空")
    if len(data) > max_bytes:
        raise InvalidPayload(f"签字单据超过大小上限（{max_bytes // 1024} KB）")
    if content_type:
        media_type = content_type.split(";")[0].strip().lower()
        if media_type not in PDF_CONTENT_TYPES:
            raise InvalidPayload(f"文件类型必须为PDF，收到: {media_type}")
    if not data.startswith(PDF_MAGIC):
        raise InvalidPayload("文件不是有效的PDF")


class DocumentExchange:
    """申领单导出与签字单据上传"""

    def __init__(self, workflow: OrderWorkflow, storage: FileStorage, max_signed_bytes: int) -> None:
        self.workflow = workflow
        self.storage = storage
        self.max_signed_bytes = max_signed_bytes

    async def export(self, caller: CallerContext, order_id: int) -> Order:
        """pending → exported"""
        order = await self.workflow.get_for_department(caller, order_id)
        self.workflow.ensure_status(order, "export")

        pdf = await asyncio.to_thread(render_order_pdf, order)
        ref = await self.storage.store(pdf, prefix=f"orders/{order.id}", suffix="-unsigned.pdf")
        try:
            order = await self.workflow.transition(
                caller, order.id, "export", values={"unsigned_document_ref": ref}
            )
        except Exception:
            await self.storage.discard(ref)
            raise
        logger.info(f"📄 申领单已导出: {order.order_no} ({len(pdf)} bytes)")
        return order

    async def upload_signed(
        self,
        caller: CallerContext,
        order_id: int,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> Order:
        """exported → uploaded；每张订单只能上传一次"""
        order = await self.workflow.get_for_department(caller, order_id)
        self.workflow.ensure_status(order, "upload_signed")
        validate_signed_pdf(data, content_type, self.max_signed_bytes)

        ref = await self.storage.store(data, prefix=f"orders/{order.id}", suffix="-signed.pdf")
        try:
            order = await self.workflow.transition(
                caller, order.id, "upload_signed", values={"signed_document_ref": ref}
            )
        except Exception:
            await self.storage.discard(ref)
            raise
        logger.info(f"📥 签字单据已上传: {order.order_no} ({len(data)} bytes)")
        return order

    async def fetch_unsigned(self, caller: CallerContext, order_id: int) -> bytes:
        """下载导出的申领单；文件丢失时按快照重新生成（结果与首次导出一致）"""
        order = await self.workflow.get(caller, order_id)
        if not order.unsigned_document_ref:
            raise NotFound(f"订单 {order.order_no} 尚未导出申领单", order_id=order.id)
        try:
            return await self.storage.fetch(order.unsigned_document_ref)
        except NotFound:
            logger.warning(f"申领单文件丢失，重新生成: {order.order_no}")
            return await asyncio.to_thread(render_order_pdf, order)

    async def fetch_signed(self, caller: CallerContext, order_id: int) -> bytes:
        order = await self.workflow.get(caller, order_id)
        if not order.signed_document_ref:
            raise NotFound(f"订单 {order.order_no} 尚未上传签字单据", order_id=order.id)
        return await self.storage.fetch(order.signed_document_ref)
