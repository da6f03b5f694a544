"""
流转事件与进程内事件总线

订单每完成一次状态流转（事务已提交）后发布 TransitionEvent。
订阅方（通知分发等）在后台任务中执行，流转调用不等待它们完成；
订阅方的异常只记录日志，不影响订单本身。
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, Set, Union

from stationery.db.base import utcnow
from stationery.domain.status import OrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerContext:
    """调用方上下文（由认证层预先解析，本模块不做认证）"""
    user_id: int
    department_id: Optional[int] = None
    is_admin: bool = False


@dataclass(frozen=True)
class TransitionEvent:
    order_id: int
    order_no: str
    department_id: int
    from_status: Optional[OrderStatus]
    to_status: OrderStatus
    actor: int
    comment: Optional[str] = None
    occurred_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class WindowChange:
    open: bool
    version: int
    changed_at: datetime = field(default_factory=utcnow)
    actor: Optional[str] = None

    def as_dict(self) -> dict:
        return {"open": self.open, "version": self.version}


Subscriber = Callable[[Any], Union[None, Awaitable[None]]]


async def call_subscriber(callback: Subscriber, payload: Any) -> bool:
    """调用订阅方（同步或异步均可），异常记录后返回 False"""
    try:
        result = callback(payload)
        if inspect.isawaitable(result):
            await result
        return True
    except Exception:
        logger.exception(f"事件订阅方处理失败: {getattr(callback, '__qualname__', callback)!r}")
        return False


class EventBus:
    """订单流转事件总线

    publish() 只登记一个后台任务就返回；同一事件的订阅方在该任务内按订阅顺序依次调用。
    """

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def publish(self, event: TransitionEvent) -> None:
        from_status = event.from_status.value if event.from_status else "-"
        logger.debug(f"发布流转事件: 订单 {event.order_id} {from_status} → {event.to_status.value}")
        task = asyncio.create_task(self._deliver(event, list(self._subscribers)))
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    @staticmethod
    async def _deliver(event: TransitionEvent, subscribers: List[Subscriber]) -> None:
        for callback in subscribers:
            await call_subscriber(callback, event)

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("流转事件处理任务异常退出", exc_info=exc)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """等待已发布事件处理完毕；超时仍未完成的任务被取消"""
        while self._pending:
            pending = set(self._pending)
            _, unfinished = await asyncio.wait(pending, timeout=timeout)
            if unfinished:
                logger.warning(f"⚠️ {len(unfinished)} 个事件处理任务超时，已取消")
                for task in unfinished:
                    task.cancel()
                await asyncio.gather(*unfinished, return_exceptions=True)
                return
