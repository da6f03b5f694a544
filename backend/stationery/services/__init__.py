"""
服务装配

build_services() 把窗口、状态机、单据、审批、通知组装在一起，
并把通知分发订阅到流转事件总线上。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from stationery.core.config import Settings, settings as default_settings
from stationery.domain.events import EventBus
from stationery.services.approval import ApprovalAuthority
from stationery.services.collaborators import (
    Catalog, FileStorage, LocalFileStorage, LoggingTransport, NotificationTransport, SqlCatalog,
)
from stationery.services.documents import DocumentExchange
from stationery.services.notifications import NotificationDispatcher
from stationery.services.order_window import OrderWindowGate
from stationery.services.order_workflow import OrderWorkflow


@dataclass
class PortalServices:
    gate: OrderWindowGate
    events: EventBus
    workflow: OrderWorkflow
    documents: DocumentExchange
    approvals: ApprovalAuthority
    notifications: NotificationDispatcher


def build_services(
    session_factory: async_sessionmaker,
    *,
    config: Settings = default_settings,
    catalog: Optional[Catalog] = None,
    storage: Optional[FileStorage] = None,
    transport: Optional[NotificationTransport] = None,
    gate: Optional[OrderWindowGate] = None,
) -> PortalServices:
    gate = gate or OrderWindowGate(initially_open=config.ORDER_WINDOW_DEFAULT_OPEN)
    events = EventBus()
    workflow = OrderWorkflow(session_factory, gate, catalog or SqlCatalog(session_factory), events)
    documents = DocumentExchange(
        workflow,
        storage or LocalFileStorage(config.UPLOAD_DIR),
        max_signed_bytes=config.SIGNED_PDF_MAX_BYTES,
    )
    notifications = NotificationDispatcher(session_factory, transport or LoggingTransport())
    events.subscribe(notifications)
    return PortalServices(
        gate=gate,
        events=events,
        workflow=workflow,
        documents=documents,
        approvals=ApprovalAuthority(workflow),
        notifications=notifications,
    )


__all__ = ["PortalServices", "build_services"]
