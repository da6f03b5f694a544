"""
测试公共夹具

每个测试使用 tmp_path 下独立的 SQLite 文件库和上传目录。
"""

from typing import List

import pytest

from stationery.db.init_db import ensure_tables_exist
from stationery.db.session import build_engine, build_session_factory
from stationery.domain.events import CallerContext
from stationery.domain.status import OrderStatus
from stationery.models import Notification, Product
from stationery.services import build_services
from stationery.services.collaborators import LocalFileStorage
from stationery.services.order_window import OrderWindowGate

SIGNED_PDF = b"%PDF-1.4\n% signed by department head\n1 0 obj << >> endobj\ntrailer << >>\n%%EOF\n"

# 推进到目标状态依次需要的步骤
STEPS_TO = {
    OrderStatus.PENDING: [],
    OrderStatus.EXPORTED: ["export"],
    OrderStatus.UPLOADED: ["export", "upload"],
    OrderStatus.SUBMITTED: ["export", "upload", "submit"],
    OrderStatus.APPROVED: ["export", "upload", "submit", "approve"],
    OrderStatus.REJECTED: ["export", "upload", "submit", "reject"],
}


class RecordingTransport:
    """记录投递过的通知"""

    def __init__(self) -> None:
        self.delivered: List[Notification] = []

    async def deliver(self, notification: Notification) -> None:
        self.delivered.append(notification)


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await ensure_tables_exist(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def products(session_factory):
    async with session_factory() as db:
        db.add_all([
            Product(id=7, name="黑色中性笔", unit="支"),
            Product(id=8, name="A4打印纸", unit="包"),
            Product(id=9, name="旧款文件夹", unit="个", is_active=False),
        ])
        await db.commit()


@pytest.fixture
def gate():
    return OrderWindowGate(initially_open=True)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(tmp_path / "uploads")


@pytest.fixture
async def services(session_factory, products, gate, transport, storage):
    services = build_services(session_factory, storage=storage, transport=transport, gate=gate)
    yield services
    # 测试结束前收尾后台通知任务，避免在引擎关闭后写库
    await services.events.drain(timeout=5)
    await services.notifications.wait_deliveries()


@pytest.fixture
def dept_user():
    return CallerContext(user_id=101, department_id=7)


@pytest.fixture
def other_dept_user():
    return CallerContext(user_id=201, department_id=8)


@pytest.fixture
def admin():
    return CallerContext(user_id=1, is_admin=True)


@pytest.fixture
def make_order(services, dept_user, admin):
    """创建订单并推进到指定状态"""

    async def _make(status: OrderStatus = OrderStatus.PENDING, caller: CallerContext = None, items=None):
        caller = caller or dept_user
        order = await services.workflow.create(caller, items or [{"product_id": 7, "quantity": 3}])
        for step in STEPS_TO[status]:
            if step == "export":
                order = await services.documents.export(caller, order.id)
            elif step == "upload":
                order = await services.documents.upload_signed(caller, order.id, SIGNED_PDF, "application/pdf")
            elif step == "submit":
                order = await services.workflow.submit(caller, order.id)
            elif step == "approve":
                order = await services.approvals.approve(admin, order.id)
            elif step == "reject":
                order = await services.approvals.reject(admin, order.id, "缺少签字页")
        # 等待各步骤的通知写入完成
        await services.events.drain()
        return order

    return _make


@pytest.fixture
def signed_pdf():
    return SIGNED_PDF
