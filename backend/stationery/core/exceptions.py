"""
业务异常定义

所有异常都是调用方可见的终态失败，不做内部重试。
每个异常带有稳定的 kind（供前端识别）和可读的 reason。
"""

from typing import Optional


class PortalError(Exception):
    """业务异常基类"""
    kind = "PortalError"
    status_code = 400

    def __init__(self, reason: str, *, order_id: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.order_id = order_id

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.reason}


class InvalidTransition(PortalError):
    """订单当前状态不允许执行该操作"""
    kind = "InvalidTransition"
    status_code = 409

    def __init__(
        self,
        reason: str,
        *,
        order_id: Optional[int] = None,
        current_status: Optional[str] = None,
        event: Optional[str] = None,
    ):
        super().__init__(reason, order_id=order_id)
        self.current_status = current_status
        self.event = event


class AlreadyResolved(InvalidTransition):
    """订单已审批完成（通过或驳回），重复审批"""
    kind = "AlreadyResolved"


class WindowClosed(PortalError):
    """下单窗口已关闭"""
    kind = "WindowClosed"
    status_code = 423


class OrderAlreadyActive(PortalError):
    """部门已有进行中的订单"""
    kind = "OrderAlreadyActive"
    status_code = 409

    def __init__(self, reason: str, *, department_id: Optional[int] = None, order_id: Optional[int] = None):
        super().__init__(reason, order_id=order_id)
        self.department_id = department_id


class NotFound(PortalError):
    kind = "NotFound"
    status_code = 404


class InvalidPayload(PortalError):
    """请求数据无效：空明细、非PDF文件、驳回意见为空等"""
    kind = "InvalidPayload"
    status_code = 422


class Unauthenticated(PortalError):
    """请求缺少调用方身份"""
    kind = "Unauthenticated"
    status_code = 401


class Unauthorized(PortalError):
    """调用方没有执行该操作的权限"""
    kind = "Unauthorized"
    status_code = 403
