"""
下单窗口 - 进程级开关

- check()：只读，返回当前 {open, version}
- toggle(open)：唯一的修改入口；版本号单调递增，修改后广播给所有订阅方
- admission()：订单创建在此锁内完成"检查窗口 + 写入订单"，与 toggle 互斥，
  保证关闭窗口之前开始的创建不会在关闭之后才成功
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, List, Optional

from stationery.domain.events import Subscriber, WindowChange, call_subscriber

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowState:
    open: bool
    version: int

    def as_dict(self) -> dict:
        return {"open": self.open, "version": self.version}


class OrderWindowGate:
    """下单窗口"""

    def __init__(self, initially_open: bool = True) -> None:
        self._open = bool(initially_open)
        self._version = 0
        self._lock = asyncio.Lock()
        self._subscribers: List[Subscriber] = []

    def check(self) -> WindowState:
        return WindowState(open=self._open, version=self._version)

    @property
    def is_open(self) -> bool:
        return self._open

    async def toggle(self, open: bool, *, actor: Optional[str] = None) -> WindowChange:
        """设置窗口状态并广播；每次调用版本号 +1（即使状态未变）"""
        async with self._lock:
            previous = self._open
            self._open = bool(open)
            self._version += 1
            change = WindowChange(open=self._open, version=self._version, actor=actor)

        if previous != change.open:
            logger.info(f"🪟 下单窗口已{'开放' if change.open else '关闭'} (v{change.version}, by {actor or 'system'})")
        else:
            logger.info(f"🪟 下单窗口状态未变，仍为{'开放' if change.open else '关闭'} (v{change.version})")

        # 锁外广播
        for callback in list(self._subscribers):
            await call_subscriber(callback, change)
        return change

    def on_window_change(self, callback: Subscriber) -> Callable[[], None]:
        """订阅窗口变化，返回取消订阅函数"""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @asynccontextmanager
    async def admission(self) -> AsyncIterator[WindowState]:
        """持有窗口锁，期间窗口状态不会变化"""
        async with self._lock:
            yield self.check()
