"""申领单导出与签字单据上传"""

import re

import pytest

from stationery.core.exceptions import InvalidPayload, InvalidTransition, NotFound
from stationery.domain.status import OrderStatus
from stationery.models import Product
from stationery.services.documents import render_order_pdf, validate_signed_pdf


def stored_files(tmp_path):
    return sorted((tmp_path / "uploads").rglob("*.pdf"))


class TestRender:

    async def test_pdf_is_deterministic(self, make_order):
        order = await make_order(items=[(7, 3), (8, 12)])
        first = render_order_pdf(order)
        assert first.startswith(b"%PDF-")
        assert render_order_pdf(order) == first

    async def test_many_lines_paginate(self, services, dept_user, session_factory):
        async with session_factory() as db:
            db.add_all([Product(id=100 + i, name=f"文具{i}", unit="个") for i in range(60)])
            await db.commit()
        order = await services.workflow.create(dept_user, [(100 + i, 1) for i in range(60)])
        pdf = render_order_pdf(order)
        page_counts = [int(n) for n in re.findall(rb"/Count (\d+)", pdf)]
        assert max(page_counts) >= 2


class TestValidateSignedPdf:

    def test_accepts_pdf(self, signed_pdf):
        validate_signed_pdf(signed_pdf, "application/pdf", 1024)
        validate_signed_pdf(signed_pdf, "application/pdf; charset=binary", 1024)
        validate_signed_pdf(signed_pdf, None, 1024)

    @pytest.mark.parametrize("data, content_type, max_bytes", [
        (b"", "application/pdf", 1024),
        (b"%PDF-1.4" + b"0" * 100, "application/pdf", 10),
        (b"%PDF-1.4 ok", "image/png", 1024),
        (b"\x89PNG\r\n\x1a\n", "application/pdf", 1024),
        (b"\x89PNG\r\n\x1a\n", None, 1024),
    ])
    def test_rejects(self, data, content_type, max_bytes):
        with pytest.raises(InvalidPayload):
            validate_signed_pdf(data, content_type, max_bytes)


class TestDocumentExchange:

    async def test_export_stores_unsigned_document(self, make_order, services, dept_user, storage):
        order = await make_order()
        order = await services.documents.export(dept_user, order.id)
        assert order.status == OrderStatus.EXPORTED
        assert order.unsigned_document_ref
        data = await storage.fetch(order.unsigned_document_ref)
        assert data == render_order_pdf(order)

    async def test_upload_stores_signed_document(self, make_order, services, dept_user, storage, signed_pdf):
        order = await make_order(OrderStatus.EXPORTED)
        order = await services.documents.upload_signed(dept_user, order.id, signed_pdf, "application/pdf")
        assert order.status == OrderStatus.UPLOADED
        assert await storage.fetch(order.signed_document_ref) == signed_pdf
        assert await services.documents.fetch_signed(dept_user, order.id) == signed_pdf

    async def test_invalid_upload_keeps_order_exported(self, make_order, services, dept_user, tmp_path):
        order = await make_order(OrderStatus.EXPORTED)
        files_before = stored_files(tmp_path)
        with pytest.raises(InvalidPayload):
            await services.documents.upload_signed(dept_user, order.id, b"not a pdf", "text/plain")
        after = await services.workflow.load(order.id)
        assert after.status == OrderStatus.EXPORTED
        assert after.signed_document_ref is None
        assert stored_files(tmp_path) == files_before

    async def test_upload_only_once(self, make_order, services, dept_user, signed_pdf):
        order = await make_order(OrderStatus.UPLOADED)
        with pytest.raises(InvalidTransition):
            await services.documents.upload_signed(dept_user, order.id, signed_pdf, "application/pdf")

    async def test_failed_transition_discards_stored_file(self, make_order, services, dept_user, tmp_path, monkeypatch):
        order = await make_order(OrderStatus.EXPORTED)
        files_before = stored_files(tmp_path)

        # 模拟检查通过后订单已被其他请求推进
        monkeypatch.setattr(services.workflow, "ensure_status", lambda order, event: None)
        with pytest.raises(InvalidTransition):
            await services.documents.export(dept_user, order.id)

        after = await services.workflow.load(order.id)
        assert after.status == OrderStatus.EXPORTED
        assert after.unsigned_document_ref == order.unsigned_document_ref
        assert stored_files(tmp_path) == files_before

    async def test_fetch_unsigned_regenerates_missing_file(self, make_order, services, dept_user, admin, storage):
        order = await make_order(OrderStatus.EXPORTED)
        original = await storage.fetch(order.unsigned_document_ref)
        await storage.discard(order.unsigned_document_ref)
        assert await services.documents.fetch_unsigned(admin, order.id) == original

    async def test_fetch_before_export(self, make_order, services, dept_user):
        order = await make_order()
        with pytest.raises(NotFound):
            await services.documents.fetch_unsigned(dept_user, order.id)
        with pytest.raises(NotFound):
            await services.documents.fetch_signed(dept_user, order.id)


class TestLocalFileStorage:

    async def test_store_fetch_discard(self, storage):
        ref = await storage.store(b"%PDF-1.4", prefix="orders/1", suffix=".pdf")
        assert ref.startswith("orders/1/") and ref.endswith(".pdf")
        assert await storage.fetch(ref) == b"%PDF-1.4"
        await storage.discard(ref)
        await storage.discard(ref)
        with pytest.raises(NotFound):
            await storage.fetch(ref)

    async def test_refs_outside_root_are_rejected(self, storage):
        with pytest.raises(NotFound):
            await storage.fetch("../../etc/passwd")
