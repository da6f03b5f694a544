"""
订单流程 - 状态机

- create()：窗口开放 + 明细有效 + 部门没有未完结订单 → pending
- 其余流转统一走 transition()：以"期望的原状态"为条件做条件更新（CAS），
  更新行数为 0 说明状态已不满足，整体回滚，不留任何部分修改
- 每次流转写一条 OrderFlow 记录；事务提交后发布 TransitionEvent
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from stationery.core.exceptions import (
    AlreadyResolved, InvalidPayload, InvalidTransition, NotFound, OrderAlreadyActive,
    Unauthorized, WindowClosed,
)
from stationery.db.base import utcnow
from stationery.domain.cart import CartLine
from stationery.domain.events import CallerContext, EventBus, TransitionEvent
from stationery.domain.status import EVENT_SOURCE, EVENT_TARGET, OrderStatus
from stationery.models.order import Order, OrderItem
from stationery.models.order_flow import OrderFlow
from stationery.services.collaborators import Catalog, ProductRef
from stationery.services.order_window import OrderWindowGate

logger = logging.getLogger(__name__)

EVENT_LABELS = {
    "create": "创建订单",
    "export": "导出申领单",
    "upload_signed": "上传签字单据",
    "submit": "提交审批",
    "approve": "审批通过",
    "reject": "审批驳回",
}


def base_order_query():
    """构建包含明细和流程记录的基础查询"""
    return select(Order).options(
        selectinload(Order.items),
        selectinload(Order.flows),
    )


async def load_order(db: AsyncSession, order_id: int) -> Optional[Order]:
    """加载包含关联的订单"""
    result = await db.execute(
        base_order_query().where(Order.id == order_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def generate_order_no(db: AsyncSession, department_id: int, today: Optional[datetime] = None) -> str:
    """生成订单号：ORD-D{部门}-{年月日}-{序号}"""
    date_str = (today or utcnow()).strftime("%Y%m%d")
    prefix = f"ORD-D{department_id:02d}-{date_str}-"

    result = await db.execute(
        select(func.max(Order.order_no)).where(Order.order_no.like(f"{prefix}%"))
    )
    max_no = result.scalar()

    if max_no:
        try:
            seq = int(max_no[len(prefix):]) + 1
        except ValueError:
            seq = 1
    else:
        seq = 1

    return f"{prefix}{seq:03d}"


def normalize_items(items: Iterable[Any]) -> List[CartLine]:
    """校验并合并明细：数量为正整数，同一商品合并为一行，保持首次出现的顺序"""
    if items is None:
        raise InvalidPayload("订单必须至少包含一条商品明细")

    merged: dict = {}
    for raw in items:
        if isinstance(raw, CartLine):
            product_id, quantity = raw.product_id, raw.quantity
        elif isinstance(raw, Mapping):
            product_id = raw.get("product_id", raw.get("productId"))
            quantity = raw.get("quantity", raw.get("qty"))
        elif isinstance(raw, (tuple, list)) and len(raw) == 2:
            product_id, quantity = raw
        else:
            product_id, quantity = getattr(raw, "product_id", None), getattr(raw, "quantity", None)

        if not isinstance(product_id, int) or isinstance(product_id, bool) or product_id <= 0:
            raise InvalidPayload(f"无效的商品ID: {product_id!r}")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise InvalidPayload(f"商品 {product_id} 的数量必须为正整数")
        merged[product_id] = merged.get(product_id, 0) + quantity

    if not merged:
        raise InvalidPayload("订单必须至少包含一条商品明细")
    return [CartLine(pid, qty) for pid, qty in merged.items()]


class OrderWorkflow:
    """订单状态机"""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        gate: OrderWindowGate,
        catalog: Catalog,
        events: EventBus,
    ) -> None:
        self._session_factory = session_factory
        self.gate = gate
        self.catalog = catalog
        self.events = events

    # -------------------- 创建 --------------------

    async def create(self, caller: CallerContext, items: Sequence[Any]) -> Order:
        """创建订单（pending）"""
        if not self.gate.is_open:
            raise WindowClosed("下单窗口已关闭，暂不能创建订单")
        if caller.department_id is None:
            raise Unauthorized("用户未归属任何部门，不能创建订单")
        department_id = caller.department_id

        lines = normalize_items(items)
        products = await self._resolve_products(lines)

        async with self.gate.admission() as window:
            if not window.open:
                raise WindowClosed("下单窗口已关闭，暂不能创建订单")

            async with self._session_factory() as db:
                active = await db.execute(
                    select(Order.id, Order.order_no).where(Order.active_department_id == department_id)
                )
                existing = active.first()
                if existing:
                    raise OrderAlreadyActive(
                        f"部门已有未完结的订单 {existing.order_no}",
                        department_id=department_id,
                        order_id=existing.id,
                    )

                now = utcnow()
                order = Order(
                    order_no=await generate_order_no(db, department_id, now),
                    department_id=department_id,
                    created_by=caller.user_id,
                    status=OrderStatus.PENDING,
                    active_department_id=department_id,
                    created_at=now,
                    updated_at=now,
                )
                for line_no, line in enumerate(lines, start=1):
                    product = products[line.product_id]
                    order.items.append(OrderItem(
                        line_no=line_no,
                        product_id=line.product_id,
                        product_name=product.name,
                        unit=product.unit,
                        quantity=line.quantity,
                    ))
                order.flows.append(OrderFlow(
                    from_status=None,
                    to_status=OrderStatus.PENDING,
                    actor_id=caller.user_id,
                    operated_at=now,
                ))
                db.add(order)
                try:
                    await db.commit()
                except IntegrityError as e:
                    await db.rollback()
                    # 唯一约束兜底：其他进程抢先占用了部门
                    if "active_department_id" in str(e.orig):
                        raise OrderAlreadyActive(
                            "部门已有未完结的订单", department_id=department_id
                        ) from e
                    # 其他进程同时为本部门下单，取走了同一订单号
                    if "order_no" in str(e.orig):
                        raise OrderAlreadyActive(
                            "部门正在被其他请求下单，请稍后重试", department_id=department_id
                        ) from e
                    raise
                order_id = order.id

        logger.info(f"✅ 订单已创建: {order.order_no} (部门 {department_id}, {len(lines)} 行)")
        return await self._after_transition(order_id, None, OrderStatus.PENDING, caller, None)

    async def _resolve_products(self, lines: List[CartLine]) -> dict:
        products = {}
        for line in lines:
            ref: ProductRef = await self.catalog.get_product(line.product_id)
            if not ref.exists:
                raise InvalidPayload(f"商品不存在: {line.product_id}")
            products[line.product_id] = ref
        return products

    # -------------------- 流转 --------------------

    async def submit(self, caller: CallerContext, order_id: int) -> Order:
        """uploaded → submitted"""
        order = await self.get_for_department(caller, order_id)
        return await self.transition(caller, order.id, "submit")

    async def transition(
        self,
        caller: CallerContext,
        order_id: int,
        event: str,
        *,
        comment: Optional[str] = None,
        values: Optional[dict] = None,
    ) -> Order:
        """按事件执行一次流转（条件更新）

        values 为随流转一起写入的字段（单据引用、审批意见等）。
        """
        source = EVENT_SOURCE[event]
        target = EVENT_TARGET[event]

        async with self._session_factory() as db:
            now = utcnow()
            changes = dict(values or {})
            changes.update(status=target, updated_at=now)
            if target.is_terminal:
                changes["active_department_id"] = None

            result = await db.execute(
                update(Order)
                .where(Order.id == order_id, Order.status == source)
                .values(**changes)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await db.rollback()
                current = await db.get(Order, order_id)
                if current is None:
                    raise NotFound(f"订单不存在: {order_id}", order_id=order_id)
                raise self.invalid_transition(current, event)

            db.add(OrderFlow(
                order_id=order_id,
                from_status=source,
                to_status=target,
                actor_id=caller.user_id,
                comment=comment,
                operated_at=now,
            ))
            await db.commit()

        logger.info(f"🔄 订单 {order_id}: {source.value} → {target.value} ({EVENT_LABELS[event]}, by {caller.user_id})")
        return await self._after_transition(order_id, source, target, caller, comment)

    async def _after_transition(
        self,
        order_id: int,
        source: Optional[OrderStatus],
        target: OrderStatus,
        caller: CallerContext,
        comment: Optional[str],
    ) -> Order:
        async with self._session_factory() as db:
            order = await load_order(db, order_id)

        await self.events.publish(TransitionEvent(
            order_id=order.id,
            order_no=order.order_no,
            department_id=order.department_id,
            from_status=source,
            to_status=target,
            actor=caller.user_id,
            comment=comment,
        ))
        return order

    @staticmethod
    def invalid_transition(order: Order, event: str) -> InvalidTransition:
        """构建"当前状态不允许该操作"的异常"""
        status = order.status
        label = EVENT_LABELS.get(event, event)
        if event in ("approve", "reject") and status.is_terminal:
            return AlreadyResolved(
                f"订单 {order.order_no} 已{status.display}，不能重复审批",
                order_id=order.id, current_status=status.value, event=event,
            )
        return InvalidTransition(
            f"订单 {order.order_no} 当前状态 '{status.display}' 不允许执行 '{label}'",
            order_id=order.id, current_status=status.value, event=event,
        )

    def ensure_status(self, order: Order, event: str) -> None:
        """流转前的快速检查（真正的保证在 transition 的条件更新里）"""
        if order.status != EVENT_SOURCE[event]:
            raise self.invalid_transition(order, event)

    # -------------------- 查询 --------------------

    async def load(self, order_id: int) -> Order:
        async with self._session_factory() as db:
            order = await load_order(db, order_id)
        if order is None:
            raise NotFound(f"订单不存在: {order_id}", order_id=order_id)
        return order

    async def get(self, caller: CallerContext, order_id: int) -> Order:
        """查看订单：本部门或管理员"""
        order = await self.load(order_id)
        if not caller.is_admin and caller.department_id != order.department_id:
            raise Unauthorized("无权查看其他部门的订单", order_id=order_id)
        return order

    async def get_for_department(self, caller: CallerContext, order_id: int) -> Order:
        """部门操作（导出、上传、提交）只能由本部门成员执行"""
        order = await self.load(order_id)
        if caller.department_id != order.department_id:
            raise Unauthorized("只能操作本部门的订单", order_id=order_id)
        return order

    async def current_order(self, caller: CallerContext) -> Optional[Order]:
        """部门当前未完结的订单"""
        if caller.department_id is None:
            return None
        async with self._session_factory() as db:
            result = await db.execute(
                base_order_query().where(Order.active_department_id == caller.department_id)
            )
            return result.scalar_one_or_none()

    async def list_orders(
        self,
        caller: CallerContext,
        *,
        department_id: Optional[int] = None,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        """订单列表（按创建时间倒序）；非管理员只能看本部门"""
        if not caller.is_admin:
            if department_id is not None and department_id != caller.department_id:
                raise Unauthorized("无权查看其他部门的订单")
            department_id = caller.department_id
            if department_id is None:
                return [], 0

        conditions = []
        if department_id is not None:
            conditions.append(Order.department_id == department_id)
        if status is not None:
            conditions.append(Order.status == OrderStatus.parse(status))

        async with self._session_factory() as db:
            count_query = select(func.count(Order.id)).where(*conditions)
            total = (await db.execute(count_query)).scalar() or 0

            query = (
                base_order_query()
                .where(*conditions)
                .order_by(Order.created_at.desc(), Order.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            orders = (await db.execute(query)).scalars().unique().all()
        return list(orders), total

    async def awaiting_approval(self, caller: CallerContext, *, page: int = 1, limit: int = 20) -> Tuple[List[Order], int]:
        """待审批订单（先提交的在前），仅管理员"""
        if not caller.is_admin:
            raise Unauthorized("只有管理员可以查看待审批订单")
        async with self._session_factory() as db:
            condition = Order.status == OrderStatus.SUBMITTED
            total = (await db.execute(select(func.count(Order.id)).where(condition))).scalar() or 0
            query = (
                base_order_query()
                .where(condition)
                .order_by(Order.updated_at.asc(), Order.id.asc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            orders = (await db.execute(query)).scalars().unique().all()
        return list(orders), total
