"""HTTP 接口"""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from stationery.domain.status import OrderStatus
from stationery.main import app
from stationery.services.order_window import OrderWindowGate

DEPT = {"X-User-Id": "101", "X-Department-Id": "7"}
OTHER_DEPT = {"X-User-Id": "201", "X-Department-Id": "8"}
ADMIN = {"X-User-Id": "1", "X-User-Role": "admin"}


@pytest.fixture
async def client(services):
    app.state.services = services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


class TestOrdersApi:

    async def test_full_flow_to_rejected(self, client, services, signed_pdf):
        resp = await client.post("/api/v1/orders/", json={"items": [{"product_id": 7, "quantity": 3}]}, headers=DEPT)
        assert resp.status_code == 201
        order = resp.json()
        assert order["status"] == "pending"
        assert order["status_display"] == "已创建"
        assert order["items"][0]["product_name"] == "黑色中性笔"
        order_id = order["id"]

        resp = await client.post(f"/api/v1/orders/{order_id}/export", headers=DEPT)
        assert resp.json()["status"] == "exported"
        assert resp.json()["has_unsigned_document"] is True

        resp = await client.get(f"/api/v1/orders/{order_id}/documents/unsigned", headers=DEPT)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF-")

        resp = await client.post(
            f"/api/v1/orders/{order_id}/signed",
            files={"file": ("signed.pdf", signed_pdf, "application/pdf")},
            headers=DEPT,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "uploaded"

        resp = await client.post(f"/api/v1/orders/{order_id}/submit", headers=DEPT)
        assert resp.json()["status"] == "submitted"

        resp = await client.get("/api/v1/orders/awaiting-approval", headers=ADMIN)
        assert [o["id"] for o in resp.json()["data"]] == [order_id]

        resp = await client.post(f"/api/v1/orders/{order_id}/reject", json={"comment": "missing signature page"}, headers=ADMIN)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "rejected"
        assert body["admin_comment"] == "missing signature page"
        assert [f["to_status"] for f in body["flows"]] == ["pending", "exported", "uploaded", "submitted", "rejected"]

        await services.events.drain()
        resp = await client.get("/api/v1/notifications/", headers=DEPT)
        assert resp.json()["total"] == 4
        [rejected] = [n for n in resp.json()["data"] if n["priority"] == "high"]
        assert rejected["meta_data"]["toStatus"] == "rejected"
        assert "missing signature page" in rejected["message"]

    async def test_missing_identity(self, client):
        resp = await client.get("/api/v1/orders/")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthenticated", "detail": "缺少用户身份"}

    async def test_malformed_identity(self, client):
        resp = await client.get("/api/v1/orders/", headers={"X-User-Id": "abc"})
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidPayload"

    async def test_window_closed(self, client, gate):
        await gate.toggle(False)
        resp = await client.post("/api/v1/orders/", json={"items": [{"product_id": 7, "quantity": 1}]}, headers=DEPT)
        assert resp.status_code == 423
        assert resp.json()["error"] == "WindowClosed"

    @pytest.mark.parametrize("payload", [{"items": []}, {}, {"items": [{"product_id": 7, "quantity": 0}]}])
    async def test_window_closed_wins_over_bad_items(self, client, gate, payload):
        await gate.toggle(False)
        resp = await client.post("/api/v1/orders/", json=payload, headers=DEPT)
        assert resp.status_code == 423
        assert resp.json()["error"] == "WindowClosed"

    @pytest.mark.parametrize("payload", [
        {"items": []},
        {"items": [{"product_id": 7, "quantity": 0}]},
        {"items": "三支笔"},
        {"items": [{"product_id": "笔", "quantity": 1}]},
    ])
    async def test_bad_items_when_open(self, client, payload):
        resp = await client.post("/api/v1/orders/", json=payload, headers=DEPT)
        assert resp.status_code == 422
        body = resp.json()
        assert set(body) == {"error", "detail"}
        assert body["error"] == "InvalidPayload"
        assert (await client.get("/api/v1/orders/current", headers=DEPT)).json() is None

    async def test_already_active(self, client):
        payload = {"items": [{"product_id": 7, "quantity": 1}]}
        assert (await client.post("/api/v1/orders/", json=payload, headers=DEPT)).status_code == 201
        resp = await client.post("/api/v1/orders/", json=payload, headers=DEPT)
        assert resp.status_code == 409
        assert resp.json()["error"] == "OrderAlreadyActive"

        current = await client.get("/api/v1/orders/current", headers=DEPT)
        assert current.json()["status"] == "pending"
        assert (await client.get("/api/v1/orders/current", headers=OTHER_DEPT)).json() is None

    async def test_invalid_transition(self, client, make_order):
        order = await make_order()
        resp = await client.post(f"/api/v1/orders/{order.id}/submit", headers=DEPT)
        assert resp.status_code == 409
        assert resp.json()["error"] == "InvalidTransition"

    async def test_approve_twice(self, client, make_order):
        order = await make_order(OrderStatus.SUBMITTED)
        first = await client.post(f"/api/v1/orders/{order.id}/approve", headers=ADMIN)
        assert first.status_code == 200
        assert first.json()["status"] == "approved"
        second = await client.post(f"/api/v1/orders/{order.id}/approve", json={"comment": "同意"}, headers=ADMIN)
        assert second.status_code == 409
        assert second.json()["error"] == "AlreadyResolved"

    async def test_reject_requires_comment(self, client, make_order):
        order = await make_order(OrderStatus.SUBMITTED)
        for body in ({"comment": " "}, {}, None):
            resp = await client.post(f"/api/v1/orders/{order.id}/reject", json=body, headers=ADMIN)
            assert resp.status_code == 422
            assert resp.json() == {"error": "InvalidPayload", "detail": "驳回订单必须填写意见"}
        assert (await client.get(f"/api/v1/orders/{order.id}", headers=ADMIN)).json()["status"] == "submitted"

    async def test_non_admin_cannot_approve(self, client, make_order):
        order = await make_order(OrderStatus.SUBMITTED)
        resp = await client.post(f"/api/v1/orders/{order.id}/approve", headers=DEPT)
        assert resp.status_code == 403
        assert resp.json() == {"error": "Unauthorized", "detail": "只有管理员可以审批订单"}

    async def test_upload_rejects_non_pdf(self, client, make_order):
        order = await make_order(OrderStatus.EXPORTED)
        resp = await client.post(
            f"/api/v1/orders/{order.id}/signed",
            files={"file": ("scan.png", b"\x89PNG\r\n\x1a\n", "image/png")},
            headers=DEPT,
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidPayload"

    async def test_other_department_cannot_read(self, client, make_order):
        order = await make_order()
        resp = await client.get(f"/api/v1/orders/{order.id}", headers=OTHER_DEPT)
        assert resp.status_code == 403
        assert (await client.get(f"/api/v1/orders/{order.id}", headers=ADMIN)).status_code == 200
        assert (await client.get("/api/v1/orders/999", headers=ADMIN)).status_code == 404

    async def test_list_and_statuses(self, client, make_order):
        await make_order()
        resp = await client.get("/api/v1/orders/", params={"status": "pending"}, headers=DEPT)
        assert resp.json()["total"] == 1
        resp = await client.get("/api/v1/orders/", params={"status": "bogus"}, headers=DEPT)
        assert resp.status_code == 422

        statuses = (await client.get("/api/v1/orders/statuses")).json()
        assert [s["code"] for s in statuses] == ["pending", "exported", "uploaded", "submitted", "approved", "rejected"]
        assert statuses[3]["next"] == ["approved", "rejected"]
        assert statuses[4]["terminal"] is True


class TestOrderWindowApi:

    async def test_check_and_toggle(self, client):
        assert (await client.get("/api/v1/order-window/")).json() == {"open": True, "version": 0}

        resp = await client.put("/api/v1/order-window/", json={"open": False}, headers=DEPT)
        assert resp.status_code == 403

        resp = await client.put("/api/v1/order-window/", json={"open": False}, headers=ADMIN)
        assert resp.json() == {"open": False, "version": 1}
        assert (await client.get("/api/v1/order-window/")).json() == {"open": False, "version": 1}

    async def test_schedule_status(self, client):
        resp = await client.get("/api/v1/order-window/schedule")
        assert resp.status_code == 200
        assert set(resp.json()) == {"enabled", "running", "jobs"}

    def test_websocket_sends_current_state(self):
        gate = OrderWindowGate(initially_open=False)
        app.state.services = SimpleNamespace(gate=gate)
        client = TestClient(app)
        with client.websocket_connect("/api/v1/order-window/ws") as ws:
            assert ws.receive_json() == {"open": False, "version": 0}
            assert gate.subscriber_count == 1

    def test_websocket_disconnect_unsubscribes(self):
        gate = OrderWindowGate()
        app.state.services = SimpleNamespace(gate=gate)
        client = TestClient(app)
        with client.websocket_connect("/api/v1/order-window/ws") as ws:
            assert ws.receive_json() == {"open": True, "version": 0}
        assert gate.subscriber_count == 0


class TestNotificationsApi:

    async def test_unread_and_mark_read(self, client, make_order):
        await make_order()
        resp = await client.get("/api/v1/notifications/unread-count", headers=DEPT)
        assert resp.json() == {"count": 1}

        listing = (await client.get("/api/v1/notifications/", headers=DEPT)).json()
        assert listing["unread"] == 1
        notification_id = listing["data"][0]["id"]
        assert listing["data"][0]["meta_data"]["toStatus"] == "pending"

        assert (await client.post(f"/api/v1/notifications/{notification_id}/read", headers=OTHER_DEPT)).status_code == 404
        resp = await client.post(f"/api/v1/notifications/{notification_id}/read", headers=DEPT)
        assert resp.json()["read"] is True
        assert (await client.post("/api/v1/notifications/read-all", headers=DEPT)).json() == {"updated": 0}

    async def test_admin_sends_system_notification(self, client, services, transport):
        payload = {"scope": "user", "recipient_id": 101, "title": "领用提醒", "message": "请到行政处领取文具"}
        assert (await client.post("/api/v1/notifications/", json=payload, headers=DEPT)).status_code == 403

        resp = await client.post("/api/v1/notifications/", json=payload, headers=ADMIN)
        assert resp.status_code == 201
        sent = resp.json()
        assert (sent["type"], sent["recipient_scope"], sent["recipient_id"]) == ("system", "user", 101)

        listing = (await client.get("/api/v1/notifications/", headers=DEPT)).json()
        assert [n["id"] for n in listing["data"]] == [sent["id"]]
        assert (await client.get("/api/v1/notifications/", headers=OTHER_DEPT)).json()["total"] == 0

        await services.notifications.wait_deliveries()
        assert [n.id for n in transport.delivered] == [sent["id"]]

        resp = await client.post("/api/v1/notifications/", json={"scope": "everyone"}, headers=ADMIN)
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidPayload"


class TestRootApi:

    async def test_health(self, client):
        assert (await client.get("/health")).json() == {"status": "ok"}
