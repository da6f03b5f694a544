"""
商品模型 - 目录服务的最小落地表

目录数据模型不属于订单流程核心；这里只保留下单校验与单据打印需要的字段。
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from stationery.db.base import Base, utcnow


class Product(Base):
    """文具商品"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True, comment="品名")
    unit = Column(String(20), nullable=False, default="个", comment="计量单位（显示用）")
    is_active = Column(Boolean, default=True, comment="是否启用")
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<Product {self.id}: {self.name}>"
