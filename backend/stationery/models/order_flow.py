"""
订单流程记录 - 记录订单的每一次状态流转
使得每张订单都有完整的生命周期可追溯
"""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from stationery.db.base import Base, utcnow
from stationery.models.order import OrderStatusType


class OrderFlow(Base):
    """订单流程记录"""
    __tablename__ = "order_flows"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    # 创建时 from_status 为空
    from_status = Column(OrderStatusType, nullable=True, comment="原状态")
    to_status = Column(OrderStatusType, nullable=False, comment="新状态")

    actor_id = Column(Integer, nullable=False, comment="操作人ID")
    comment = Column(Text, comment="备注/审批意见")
    operated_at = Column(DateTime, default=utcnow, nullable=False, comment="操作时间")

    order = relationship("Order", back_populates="flows")

    def __repr__(self):
        src = self.from_status.value if self.from_status else "-"
        return f"<OrderFlow {self.order_id}: {src} → {self.to_status.value}>"

    @property
    def type_display(self) -> str:
        """流转显示名称"""
        return self.to_status.display
