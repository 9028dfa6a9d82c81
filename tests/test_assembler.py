"""
Tests for the invoice assembler
"""

from datetime import date
from decimal import Decimal

import pytest

from engine.assembler import InvoiceAssembler
from models.errors import ValidationError
from models.invoice import InvoiceMetadata, InvoiceStatus, InvoiceType, LineItem


ITEM = {
    "description": "Shirt stitching",
    "quantity": 2,
    "unitPrice": 500,
    "applyCgst": True,
    "applySgst": True,
    "cgstRate": 9,
    "sgstRate": 9,
}

METADATA = {
    "invoiceNumber": "INV-001",
    "invoiceDate": "2024-09-15",
    "dueDate": "2024-10-15",
    "customerId": "CUST-001",
}


class TestInvoiceAssembler:

    @pytest.fixture
    def assembler(self):
        return InvoiceAssembler()

    def test_assembles_record(self, assembler):
        record = assembler.assemble([ITEM, ITEM], METADATA)

        assert record.status == InvoiceStatus.UNPAID
        assert record.amount == Decimal("2360")
        assert record.amount == record.totals.grand_total_rounded
        assert record.round_off_applied is False
        assert record.customer_id == "CUST-001"
        assert record.invoice_date == date(2024, 9, 15)
        assert record.invoice_type == InvoiceType.TAX_INVOICE
        assert len(record.items) == 2
        assert record.id is None
        assert record.payments == ()

    def test_round_off_recorded(self, assembler):
        record = assembler.assemble([{"quantity": 1, "unitPrice": "2360.60"}], METADATA)

        assert record.amount == Decimal("2361")
        assert record.round_off_applied is True
        assert record.totals.round_off_delta == Decimal("0.40")

    def test_finalized_invoice_needs_items(self, assembler):
        with pytest.raises(ValidationError) as exc_info:
            assembler.assemble([], METADATA)

        assert any("at least one line item" in e for e in exc_info.value.errors)

    def test_draft_without_items(self, assembler):
        record = assembler.assemble([], {**METADATA, "draft": True})

        assert record.status == InvoiceStatus.DRAFT
        assert record.amount == 0
        assert record.round_off_applied is False

    def test_draft_with_items_is_still_computed(self, assembler):
        record = assembler.assemble([ITEM], {**METADATA, "draft": True})

        assert record.status == InvoiceStatus.DRAFT
        assert record.amount == Decimal("1180")

    def test_missing_customer(self, assembler):
        metadata = {k: v for k, v in METADATA.items() if k != "customerId"}

        with pytest.raises(ValidationError) as exc_info:
            assembler.assemble([ITEM], metadata)

        assert "Missing required field: customerId" in exc_info.value.errors

    def test_blank_customer_is_missing(self, assembler):
        with pytest.raises(ValidationError):
            assembler.assemble([ITEM], {**METADATA, "customerId": "   "})

    def test_all_errors_reported_together(self, assembler):
        bad_item = {**ITEM, "quantity": -1}
        metadata = {"invoiceDate": "2024-09-15", "dueDate": "2024-09-01"}

        with pytest.raises(ValidationError) as exc_info:
            assembler.assemble([ITEM, bad_item], metadata)

        errors = exc_info.value.errors
        assert any(e.startswith("Line item 2") for e in errors)
        assert any("customerId" in e for e in errors)
        assert any("Due date" in e for e in errors)

    def test_submitted_status_is_ignored(self, assembler):
        record = assembler.assemble_submission({**METADATA, "status": "Paid", "items": [ITEM]})

        assert record.status == InvoiceStatus.UNPAID

    def test_submission_item_keys(self, assembler):
        for key in ("items", "lineItems", "line_items"):
            record = assembler.assemble_submission({**METADATA, key: [ITEM]})
            assert record.amount == Decimal("1180")

    def test_accepts_typed_inputs(self, assembler):
        metadata = InvoiceMetadata(customer_id="CUST-9", invoice_date=date(2024, 1, 1))
        item = LineItem(quantity=Decimal("1"), unit_price=Decimal("99.50"))

        record = assembler.assemble([item], metadata)

        assert record.amount == Decimal("100")
        assert record.round_off_applied is True

    def test_quotation_type(self, assembler):
        record = assembler.assemble([ITEM], {**METADATA, "type": "Quotation"})

        assert record.invoice_type == InvoiceType.QUOTATION
        assert record.to_json()["type"] == "Quotation"

    def test_wire_shape(self, assembler):
        data = assembler.assemble([ITEM], METADATA).to_json()

        assert data["amount"] == 1180
        assert data["status"] == "Unpaid"
        assert data["customerId"] == "CUST-001"
        assert data["roundOffApplied"] is False
        assert data["items"][0]["unitPrice"] == 500
        assert data["items"][0]["applyCgst"] is True
        assert data["totals"]["totalTax"] == 180
