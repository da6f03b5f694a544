"""
外部协作方接口

订单流程核心只通过这里的窄接口访问：
- 商品目录：get_product(id) → ProductRef
- 文件存储：store(bytes) → ref / fetch(ref) → bytes
- 通知投递：deliver(notification)，失败只记日志，不由核心重试
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from sqlalchemy.ext.asyncio import async_sessionmaker

from stationery.core.exceptions import NotFound
from stationery.models.notification import Notification
from stationery.models.product import Product

logger = logging.getLogger(__name__)


# ===== 商品目录 =====
@dataclass(frozen=True)
class ProductRef:
    id: int
    exists: bool
    name: Optional[str] = None
    unit: Optional[str] = None


@runtime_checkable
class Catalog(Protocol):
    async def get_product(self, product_id: int) -> ProductRef: ...


class SqlCatalog:
    """基于 products 表的目录查询；停用的商品视为不存在"""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def get_product(self, product_id: int) -> ProductRef:
        async with self._session_factory() as db:
            product = await db.get(Product, product_id)
        if not product or not product.is_active:
            return ProductRef(id=product_id, exists=False)
        return ProductRef(id=product.id, exists=True, name=product.name, unit=product.unit)


# ===== 文件存储 =====
@runtime_checkable
class FileStorage(Protocol):
    async def store(self, data: bytes, *, prefix: str = "", suffix: str = "") -> str: ...

    async def fetch(self, ref: str) -> bytes: ...

    async def discard(self, ref: str) -> None: ...


class LocalFileStorage:
    """本地目录存储，ref 为相对根目录的路径"""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, ref: str) -> Path:
        path = (self.root / ref).resolve()
        if self.root not in path.parents:
            raise NotFound(f"文件不存在: {ref}")
        return path

    def _write(self, ref: str, data: bytes) -> None:
        path = self._resolve(ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def _read(self, ref: str) -> bytes:
        path = self._resolve(ref)
        if not path.is_file():
            raise NotFound(f"文件不存在: {ref}")
        return path.read_bytes()

    def _remove(self, ref: str) -> None:
        path = self._resolve(ref)
        path.unlink(missing_ok=True)

    async def store(self, data: bytes, *, prefix: str = "", suffix: str = "") -> str:
        name = f"{uuid.uuid4().hex}{suffix}"
        ref = f"{prefix.strip('/')}/{name}" if prefix else name
        await asyncio.to_thread(self._write, ref, data)
        logger.debug(f"文件已保存: {ref} ({len(data)} bytes)")
        return ref

    async def fetch(self, ref: str) -> bytes:
        return await asyncio.to_thread(self._read, ref)

    async def discard(self, ref: str) -> None:
        await asyncio.to_thread(self._remove, ref)


# ===== 通知投递 =====
@runtime_checkable
class NotificationTransport(Protocol):
    async def deliver(self, notification: Notification) -> None: ...


class LoggingTransport:
    """默认投递方式：只写日志（推送/邮件通道由外部接入）"""

    async def deliver(self, notification: Notification) -> None:
        logger.info(
            f"🔔 通知投递 [{notification.priority.value}] "
            f"{notification.recipient_scope.value}:{notification.recipient_id} - {notification.title}"
        )
