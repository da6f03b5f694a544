"""
通知分发 - 订阅订单流转事件，生成站内通知并交给投递通道

流转 → 通知：
- → approved   部门  order/high
- → rejected   部门  order/high（正文包含管理员意见）
- → submitted  管理员 order/medium
- 其他         部门  order/normal

通知是尽力而为的副作用：由事件总线在后台任务中调用，任何失败只记日志，不回滚、不阻塞订单流转。
管理员也可以用 send() 直接发送系统通知（type=system），可指定到单个用户。
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from stationery.core.exceptions import InvalidPayload, NotFound, Unauthorized
from stationery.db.base import utcnow
from stationery.domain.events import CallerContext, TransitionEvent
from stationery.domain.status import OrderStatus
from stationery.models.notification import (
    Notification, NotificationPriority, NotificationType, RecipientScope
)
from stationery.services.collaborators import NotificationTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationPlan:
    scope: RecipientScope
    priority: NotificationPriority
    title: str
    message: str


def plan_for(event: TransitionEvent) -> NotificationPlan:
    """流转事件 → 通知内容"""
    order_no = event.order_no
    target = event.to_status

    if target == OrderStatus.APPROVED:
        message = f"您部门的订单 {order_no} 已审批通过。"
        if event.comment:
            message += f"管理员意见：{event.comment}"
        return NotificationPlan(RecipientScope.DEPARTMENT, NotificationPriority.HIGH, "订单已通过", message)

    if target == OrderStatus.REJECTED:
        return NotificationPlan(
            RecipientScope.DEPARTMENT, NotificationPriority.HIGH, "订单被驳回",
            f"您部门的订单 {order_no} 被驳回。管理员意见：{event.comment or ''}",
        )

    if target == OrderStatus.SUBMITTED:
        return NotificationPlan(
            RecipientScope.ADMINS, NotificationPriority.MEDIUM, "新订单待审批",
            f"部门 {event.department_id} 提交了订单 {order_no}，请审批。",
        )

    return NotificationPlan(
        RecipientScope.DEPARTMENT, NotificationPriority.NORMAL, f"订单{target.display}",
        f"订单 {order_no} 状态更新为「{target.display}」：{target.description}",
    )


def visible_to(caller: CallerContext):
    """调用方可见的通知范围：本人、本部门，以及管理员频道（仅管理员）"""
    conditions = [
        and_(Notification.recipient_scope == RecipientScope.USER, Notification.recipient_id == caller.user_id),
    ]
    if caller.department_id is not None:
        conditions.append(and_(
            Notification.recipient_scope == RecipientScope.DEPARTMENT,
            Notification.recipient_id == caller.department_id,
        ))
    if caller.is_admin:
        conditions.append(Notification.recipient_scope == RecipientScope.ADMINS)
    return or_(*conditions)


class NotificationDispatcher:
    """订单流转事件的订阅方"""

    def __init__(self, session_factory: async_sessionmaker, transport: NotificationTransport) -> None:
        self._session_factory = session_factory
        self.transport = transport
        self._deliveries: Set[asyncio.Task] = set()

    async def __call__(self, event: TransitionEvent) -> Optional[Notification]:
        return await self.dispatch(event)

    async def dispatch(self, event: TransitionEvent) -> Optional[Notification]:
        """生成并投递一条通知；失败返回 None"""
        plan = plan_for(event)
        try:
            async with self._session_factory() as db:
                notification = Notification(
                    recipient_scope=plan.scope,
                    recipient_id=None if plan.scope == RecipientScope.ADMINS else event.department_id,
                    type=NotificationType.ORDER,
                    priority=plan.priority,
                    title=plan.title,
                    message=plan.message,
                    read=False,
                    created_at=utcnow(),
                    meta_data={
                        "orderId": str(event.order_id),
                        "orderNumber": event.order_no,
                        "fromStatus": event.from_status.value if event.from_status else "",
                        "toStatus": event.to_status.value,
                        "actor": str(event.actor),
                    },
                )
                db.add(notification)
                await db.commit()
        except Exception:
            logger.exception(f"❌ 通知记录保存失败: 订单 {event.order_id} → {event.to_status.value}")
            return None

        await self._deliver(notification)
        return notification

    async def send(
        self,
        caller: CallerContext,
        *,
        scope: RecipientScope,
        recipient_id: Optional[int],
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> Notification:
        """管理员直接发送系统通知（指定用户、部门或全体管理员）"""
        if not caller.is_admin:
            raise Unauthorized("只有管理员可以发送系统通知")
        if not title or not title.strip() or not message or not message.strip():
            raise InvalidPayload("通知标题和内容不能为空")
        if scope == RecipientScope.ADMINS:
            recipient_id = None
        elif recipient_id is None:
            raise InvalidPayload(f"发送给 {scope.value} 的通知必须指定接收方")

        async with self._session_factory() as db:
            notification = Notification(
                recipient_scope=scope,
                recipient_id=recipient_id,
                type=NotificationType.SYSTEM,
                priority=priority,
                title=title.strip(),
                message=message.strip(),
                read=False,
                created_at=utcnow(),
                meta_data={"sender": str(caller.user_id)},
            )
            db.add(notification)
            await db.commit()
        logger.info(f"📢 系统通知已发送: {scope.value}:{recipient_id} - {notification.title}")

        # 投递在后台进行，请求不等待投递通道
        task = asyncio.create_task(self._deliver(notification))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)
        return notification

    async def _deliver(self, notification: Notification) -> None:
        try:
            await self.transport.deliver(notification)
        except Exception:
            # 投递失败只记录，重试由投递通道负责
            logger.warning(f"通知投递失败: {notification.id}", exc_info=True)

    async def wait_deliveries(self) -> None:
        """等待后台投递完成"""
        if self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    # -------------------- 查询/已读 --------------------

    async def list_for(
        self,
        caller: CallerContext,
        *,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Notification], int]:
        conditions = [visible_to(caller)]
        if unread_only:
            conditions.append(Notification.read.is_(False))

        async with self._session_factory() as db:
            total = (await db.execute(select(func.count(Notification.id)).where(*conditions))).scalar() or 0
            query = (
                select(Notification)
                .where(*conditions)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            notifications = (await db.execute(query)).scalars().all()
        return list(notifications), total

    async def unread_count(self, caller: CallerContext) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                select(func.count(Notification.id)).where(visible_to(caller), Notification.read.is_(False))
            )
            return result.scalar() or 0

    async def mark_read(self, caller: CallerContext, notification_id: int) -> Notification:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Notification).where(Notification.id == notification_id, visible_to(caller))
            )
            notification = result.scalar_one_or_none()
            if notification is None:
                raise NotFound(f"通知不存在: {notification_id}")
            if not notification.read:
                notification.read = True
                notification.read_at = utcnow()
                await db.commit()
            return notification

    async def mark_all_read(self, caller: CallerContext) -> int:
        """全部标记已读，返回更新条数"""
        async with self._session_factory() as db:
            result = await db.execute(
                update(Notification)
                .where(visible_to(caller), Notification.read.is_(False))
                .values(read=True, read_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount or 0
