"""
Desktop bridge tests
The IPC handlers must return exactly what the HTTP surface returns
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from bridge.ipc import DesktopBridge
from models.errors import StateTransitionError, ValidationError
from services.invoice_service import InvoiceService


SUBMISSION = {
    "invoiceNumber": "INV-100",
    "invoiceDate": "2024-09-15",
    "dueDate": "2024-10-15",
    "customerId": "CUST-001",
    "items": [
        {"description": "Kurta stitching", "quantity": 1, "unitPrice": "2360.60"},
    ],
}


@pytest.fixture
def service():
    return InvoiceService(clock=lambda: date(2024, 9, 20))


@pytest.fixture
def bridge(service):
    return DesktopBridge(service)


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


class TestDesktopBridge:

    @pytest.mark.asyncio
    async def test_save_matches_http_read(self, bridge, client):
        saved = await bridge.handle("save-invoice", SUBMISSION)

        assert client.get(f"/invoices/{saved['id']}").json() == saved

    @pytest.mark.asyncio
    async def test_read_matches_http_save(self, bridge, client):
        created = client.post("/invoices", json=SUBMISSION).json()

        assert await bridge.handle("get-invoice-by-id", created["id"]) == created
        assert await bridge.handle("get-all-invoices") == client.get("/invoices").json()

    @pytest.mark.asyncio
    async def test_round_off_fields(self, bridge):
        saved = await bridge.handle("save-invoice", SUBMISSION)

        assert saved["amount"] == 2361
        assert saved["roundOffApplied"] is True

    @pytest.mark.asyncio
    async def test_missing_invoice_is_none(self, bridge):
        assert await bridge.handle("get-invoice-by-id", "nope") is None

    @pytest.mark.asyncio
    async def test_delete(self, bridge):
        saved = await bridge.handle("save-invoice", SUBMISSION)

        assert await bridge.handle("delete-invoice", saved["id"]) is True
        assert await bridge.handle("delete-invoice", saved["id"]) is False

    @pytest.mark.asyncio
    async def test_company_info(self, bridge, client):
        assert await bridge.handle("get-company-info") is None

        saved = await bridge.handle("save-company-info", {"name": "Stitch & Co", "phone": "9800000000"})

        assert saved == client.get("/company").json()

    @pytest.mark.asyncio
    async def test_invalid_submission_raises(self, bridge):
        with pytest.raises(ValidationError):
            await bridge.handle("save-invoice", {**SUBMISSION, "items": []})

    @pytest.mark.asyncio
    async def test_draft_cannot_be_restored_after_finalize(self, bridge):
        saved = await bridge.handle("save-invoice", SUBMISSION)

        with pytest.raises(StateTransitionError):
            await bridge.handle("save-invoice", {**SUBMISSION, "id": saved["id"], "draft": True})

    @pytest.mark.asyncio
    async def test_unknown_channel(self, bridge):
        with pytest.raises(ValidationError):
            await bridge.handle("drop-database")
