"""
申领订单模型

生命周期：pending → exported → uploaded → submitted → approved / rejected
- 明细在创建后不可修改（导出后即对应一份纸质签字单据）
- 同一部门同一时间只能有一张未完结订单
"""

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, CheckConstraint, Enum as SAEnum
)
from sqlalchemy.orm import relationship
from stationery.db.base import Base, utcnow
from stationery.domain.status import OrderStatus

OrderStatusType = SAEnum(
    OrderStatus,
    name="order_status",
    native_enum=False,
    length=20,
    values_callable=lambda enum: [member.value for member in enum],
    validate_strings=True,
)


class Order(Base):
    """申领订单"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # 单号（自动生成）
    # 格式：ORD-{部门}-{年月日}-{序号}，如 ORD-D07-20241202-001
    order_no = Column(String(50), unique=True, nullable=False, index=True, comment="订单号")

    department_id = Column(Integer, nullable=False, index=True, comment="所属部门ID")
    created_by = Column(Integer, nullable=False, comment="创建人ID")

    status = Column(OrderStatusType, nullable=False, default=OrderStatus.PENDING, index=True, comment="状态")

    # 未完结时等于 department_id，完结后置空；唯一约束保证每个部门最多一张未完结订单
    active_department_id = Column(Integer, unique=True, nullable=True, comment="占用中的部门")

    # 审批
    admin_comment = Column(Text, comment="管理员意见")
    resolved_by = Column(Integer, comment="审批人ID")

    # 单据引用（由文件存储返回，不透明）
    unsigned_document_ref = Column(String(255), comment="导出的申领单")
    signed_document_ref = Column(String(255), comment="已签字单据")

    # 审计字段
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # 关系
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderItem.line_no"
    )
    flows = relationship(
        "OrderFlow", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderFlow.id"
    )

    def __repr__(self):
        return f"<Order {self.order_no} ({self.status.value if self.status else None})>"

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def status_display(self) -> str:
        return self.status.display

    @property
    def progress(self) -> int:
        return self.status.progress

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class OrderItem(Base):
    """订单明细 - 创建后不可修改"""
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_item_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    line_no = Column(Integer, nullable=False, comment="行号（从1开始）")
    product_id = Column(Integer, nullable=False, comment="商品ID")
    # 商品名称快照，打印单据用；商品后续改名不影响历史单据
    product_name = Column(String(100), comment="品名快照")
    unit = Column(String(20), comment="单位快照")
    quantity = Column(Integer, nullable=False, comment="数量")

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.order_id}#{self.line_no}: {self.product_id} x {self.quantity}>"
