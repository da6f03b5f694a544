"""
定时任务调度器服务
使用 APScheduler 按月开放/关闭下单窗口
"""

import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from stationery.core.config import Settings, settings as default_settings
from stationery.services.order_window import OrderWindowGate

logger = logging.getLogger(__name__)

# 全局调度器实例
scheduler: Optional[AsyncIOScheduler] = None

OPEN_JOB_ID = "order_window_open"
CLOSE_JOB_ID = "order_window_close"


async def open_order_window(gate: OrderWindowGate):
    """定时开放下单窗口"""
    await gate.toggle(True, actor="scheduler")


async def close_order_window(gate: OrderWindowGate):
    """定时关闭下单窗口"""
    await gate.toggle(False, actor="scheduler")


def build_scheduler(gate: OrderWindowGate, config: Settings = default_settings) -> AsyncIOScheduler:
    """创建调度器并注册开/关窗口任务（不启动）"""
    new_scheduler = AsyncIOScheduler(timezone=config.ORDER_WINDOW_TIMEZONE) if config.ORDER_WINDOW_TIMEZONE else AsyncIOScheduler()

    # 默认每月1日 00:00 开放
    new_scheduler.add_job(
        open_order_window,
        trigger=CronTrigger(
            day=config.ORDER_WINDOW_OPEN_DAY,
            hour=config.ORDER_WINDOW_OPEN_HOUR,
            minute=config.ORDER_WINDOW_OPEN_MINUTE,
        ),
        args=[gate],
        id=OPEN_JOB_ID,
        name="开放下单窗口",
        replace_existing=True
    )

    # 默认每月8日 08:00 关闭
    new_scheduler.add_job(
        close_order_window,
        trigger=CronTrigger(
            day=config.ORDER_WINDOW_CLOSE_DAY,
            hour=config.ORDER_WINDOW_CLOSE_HOUR,
            minute=config.ORDER_WINDOW_CLOSE_MINUTE,
        ),
        args=[gate],
        id=CLOSE_JOB_ID,
        name="关闭下单窗口",
        replace_existing=True
    )
    return new_scheduler


def init_scheduler(gate: OrderWindowGate, config: Settings = default_settings):
    """初始化并启动调度器（需在事件循环内调用）"""
    global scheduler

    if not config.ORDER_WINDOW_SCHEDULE_ENABLED:
        logger.info("⏰ 下单窗口定时开关已禁用")
        return

    scheduler = build_scheduler(gate, config)
    scheduler.start()
    logger.info(
        f"⏰ 定时任务调度器已启动 - 每月{config.ORDER_WINDOW_OPEN_DAY}日 "
        f"{config.ORDER_WINDOW_OPEN_HOUR:02d}:{config.ORDER_WINDOW_OPEN_MINUTE:02d} 开放，"
        f"{config.ORDER_WINDOW_CLOSE_DAY}日 "
        f"{config.ORDER_WINDOW_CLOSE_HOUR:02d}:{config.ORDER_WINDOW_CLOSE_MINUTE:02d} 关闭"
    )


def shutdown_scheduler():
    """关闭调度器"""
    global scheduler
    if scheduler:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("⏰ 定时任务调度器已关闭")


def get_scheduler_status() -> dict:
    """获取调度器状态"""
    if not scheduler:
        return {
            "enabled": False,
            "running": False,
            "jobs": []
        }

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "enabled": True,
        "running": scheduler.running,
        "jobs": jobs
    }
