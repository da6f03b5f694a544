"""
下单窗口 API
- 查询 / 切换（管理员）
- 定时任务状态
- WebSocket 实时推送窗口变化
"""

import asyncio
import contextlib
import logging
from typing import Any
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from stationery.core.deps import get_caller, get_services
from stationery.core.exceptions import Unauthorized
from stationery.domain.events import CallerContext, WindowChange
from stationery.schemas.order_window import OrderWindowResponse, OrderWindowToggle
from stationery.services import PortalServices
from stationery.services.scheduler import get_scheduler_status

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=OrderWindowResponse)
async def get_order_window(
    *,
    services: PortalServices = Depends(get_services)) -> Any:
    """当前窗口状态（无需身份）"""
    return services.gate.check().as_dict()


@router.put("/", response_model=OrderWindowResponse)
async def toggle_order_window(
    *,
    services: PortalServices = Depends(get_services),
    caller: CallerContext = Depends(get_caller),
    toggle_in: OrderWindowToggle) -> Any:
    """开放/关闭下单窗口 - 仅管理员"""
    if not caller.is_admin:
        raise Unauthorized("只有管理员可以切换下单窗口")
    change = await services.gate.toggle(toggle_in.open, actor=f"user:{caller.user_id}")
    return {"open": change.open, "version": change.version}


@router.get("/schedule")
async def get_order_window_schedule() -> Any:
    """定时开关任务状态"""
    return get_scheduler_status()


@router.websocket("/ws")
async def order_window_updates(websocket: WebSocket):
    """连接后先推送当前状态，之后每次切换推送 {open, version}"""
    services: PortalServices = websocket.app.state.services
    await websocket.accept()

    queue: "asyncio.Queue[WindowChange]" = asyncio.Queue()
    unsubscribe = services.gate.on_window_change(queue.put_nowait)

    async def forward_changes():
        while True:
            change = await queue.get()
            await websocket.send_json({"open": change.open, "version": change.version})

    sender = None
    try:
        await websocket.send_json(services.gate.check().as_dict())
        sender = asyncio.create_task(forward_changes())
        # 客户端消息忽略，只用于感知断开
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("下单窗口推送连接已断开")
    finally:
        unsubscribe()
        if sender:
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await sender
