"""
订单状态机

pending → exported → uploaded → submitted → approved / rejected

状态只能沿固定方向前进，不允许回退、不允许跳步；
approved 与 rejected 为终态。
"""

from enum import Enum
from typing import Dict, FrozenSet


class OrderStatus(str, Enum):
    PENDING = "pending"
    EXPORTED = "exported"
    UPLOADED = "uploaded"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value) -> "OrderStatus":
        """严格解析状态值，不做大小写兼容"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"未知订单状态: {value!r}") from None

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return target in TRANSITIONS[self]

    @property
    def display(self) -> str:
        return STATUS_INFO[self][0]

    @property
    def progress(self) -> int:
        return STATUS_INFO[self][1]

    @property
    def description(self) -> str:
        return STATUS_INFO[self][2]


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.EXPORTED}),
    OrderStatus.EXPORTED: frozenset({OrderStatus.UPLOADED}),
    OrderStatus.UPLOADED: frozenset({OrderStatus.SUBMITTED}),
    OrderStatus.SUBMITTED: frozenset({OrderStatus.APPROVED, OrderStatus.REJECTED}),
    OrderStatus.APPROVED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({OrderStatus.APPROVED, OrderStatus.REJECTED})

ACTIVE_STATUSES: FrozenSet[OrderStatus] = frozenset(OrderStatus) - TERMINAL_STATUSES

# 状态 → (显示名称, 进度百分比, 说明)
STATUS_INFO = {
    OrderStatus.PENDING: ("已创建", 20, "订单已创建，请导出申领单PDF"),
    OrderStatus.EXPORTED: ("已导出", 40, "申领单已导出，请打印签字后上传"),
    OrderStatus.UPLOADED: ("已上传", 60, "签字单据已上传，请提交审批"),
    OrderStatus.SUBMITTED: ("待审批", 80, "已提交，等待管理员审批"),
    OrderStatus.APPROVED: ("已通过", 100, "订单已审批通过，将安排配送"),
    OrderStatus.REJECTED: ("已驳回", 100, "订单被驳回，请查看管理员意见"),
}

# 事件 → 要求的起始状态
EVENT_SOURCE: Dict[str, OrderStatus] = {
    "export": OrderStatus.PENDING,
    "upload_signed": OrderStatus.EXPORTED,
    "submit": OrderStatus.UPLOADED,
    "approve": OrderStatus.SUBMITTED,
    "reject": OrderStatus.SUBMITTED,
}

EVENT_TARGET: Dict[str, OrderStatus] = {
    "export": OrderStatus.EXPORTED,
    "upload_signed": OrderStatus.UPLOADED,
    "submit": OrderStatus.SUBMITTED,
    "approve": OrderStatus.APPROVED,
    "reject": OrderStatus.REJECTED,
}
