"""
审批 - 管理员对已提交订单做出通过/驳回

- 只有管理员可以审批
- 驳回必须填写意见（申请部门唯一的反馈渠道）
- 通过/驳回均为终态；对已完结订单再次审批返回 AlreadyResolved，暴露重复点击等问题
"""
from __future__ import annotations

import logging
from typing import Optional

from stationery.core.exceptions import InvalidPayload, Unauthorized
from stationery.domain.events import CallerContext
from stationery.models.order import Order
from stationery.services.order_workflow import OrderWorkflow

logger = logging.getLogger(__name__)


class ApprovalAuthority:

    def __init__(self, workflow: OrderWorkflow) -> None:
        self.workflow = workflow

    @staticmethod
    def _require_admin(caller: CallerContext) -> None:
        if not caller.is_admin:
            raise Unauthorized("只有管理员可以审批订单")

    async def approve(self, caller: CallerContext, order_id: int, comment: Optional[str] = None) -> Order:
        """submitted → approved"""
        self._require_admin(caller)
        comment = comment.strip() if comment else None
        order = await self.workflow.transition(
            caller, order_id, "approve",
            comment=comment,
            values={"admin_comment": comment, "resolved_by": caller.user_id},
        )
        logger.info(f"👍 订单审批通过: {order.order_no} (审批人 {caller.user_id})")
        return order

    async def reject(self, caller: CallerContext, order_id: int, comment: Optional[str]) -> Order:
        """submitted → rejected，意见必填"""
        self._require_admin(caller)
        if not comment or not comment.strip():
            raise InvalidPayload("驳回订单必须填写意见", order_id=order_id)
        comment = comment.strip()
        order = await self.workflow.transition(
            caller, order_id, "reject",
            comment=comment,
            values={"admin_comment": comment, "resolved_by": caller.user_id},
        )
        logger.info(f"👎 订单已驳回: {order.order_no} (审批人 {caller.user_id}): {comment}")
        return order
