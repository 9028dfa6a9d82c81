"""
Integration tests for the complete invoice workflow
Sample submissions through assembly, persistence and the payment lifecycle

Run with: pytest tests/test_integration.py -v
"""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from engine.assembler import InvoiceAssembler
from models.errors import StateTransitionError, ValidationError
from models.invoice import InvoiceRecord, InvoiceStatus
from services.invoice_service import InvoiceService
from storage.repository import JsonFileRepository
from utils.data_loaders import InvoiceDataLoader


DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Clock:
    """Settable 'today' for lifecycle tests"""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


class TestSampleSubmissions:
    """Every sample submission assembles (or is rejected) as labelled"""

    @pytest.fixture
    def test_loader(self):
        return InvoiceDataLoader(str(DATA_DIR))

    @pytest.fixture
    def assembler(self):
        return InvoiceAssembler()

    def test_standard_invoice(self, test_loader, assembler):
        record = assembler.assemble_submission(test_loader.get_submission("SUB-001"))

        assert record.amount == Decimal("1475")
        assert record.totals.total_cgst == Decimal("112.5")
        assert record.round_off_applied is False
        assert record.status == InvoiceStatus.UNPAID

    def test_rounded_invoice(self, test_loader, assembler):
        record = assembler.assemble_submission(test_loader.get_submission("SUB-002"))

        assert record.totals.grand_total_raw == Decimal("1179.9882")
        assert record.amount == Decimal("1180")
        assert record.totals.round_off_delta == Decimal("0.0118")

    def test_interstate_invoice(self, test_loader, assembler):
        record = assembler.assemble_submission(test_loader.get_submission("SUB-003"))

        assert record.totals.total_igst == Decimal("216.90")
        assert record.totals.total_cgst == 0
        assert record.amount == Decimal("1422")
        assert record.shipment_details.place_of_supply == "Karnataka"

    def test_exempt_invoice(self, test_loader, assembler):
        record = assembler.assemble_submission(test_loader.get_submission("SUB-004"))

        assert record.amount == Decimal("2361")
        assert record.totals.round_off_delta == Decimal("0.40")

    def test_draft_quotation(self, test_loader, assembler):
        record = assembler.assemble_submission(test_loader.get_submission("SUB-005"))

        assert record.status == InvoiceStatus.DRAFT
        assert record.amount == 0

    def test_invalid_submissions_rejected(self, test_loader, assembler):
        invalid = test_loader.get_by_category("INVALID")
        assert len(invalid) == 3

        for submission in invalid:
            with pytest.raises(ValidationError):
                assembler.assemble_submission(submission)

    def test_loader_strips_bookkeeping_keys(self, test_loader):
        submission = test_loader.get_submission("SUB-001")

        assert "submission_id" not in submission
        assert not any(key.startswith("_") for key in submission)

    def test_unknown_submission(self, test_loader):
        with pytest.raises(ValueError):
            test_loader.get_submission("SUB-999")


class TestInvoiceLifecycle:

    @pytest.fixture
    def clock(self):
        return Clock(date(2024, 9, 15))

    @pytest.fixture
    def service(self, clock):
        return InvoiceService(clock=clock)

    @pytest.fixture
    def draft(self):
        return {
            "invoiceNumber": "INV-500",
            "invoiceDate": "2024-09-15",
            "dueDate": "2024-09-30",
            "customerId": "CUST-001",
            "draft": True,
            "items": [
                {"description": "Lehenga stitching", "quantity": 2, "unitPrice": 500,
                 "applyCgst": True, "applySgst": True, "cgstRate": 9, "sgstRate": 9},
            ],
        }

    def test_full_lifecycle(self, service, clock, draft):
        record = service.save_invoice(draft)
        assert record.status == InvoiceStatus.DRAFT

        record = service.finalize_invoice(record.id)
        assert record.status == InvoiceStatus.UNPAID
        assert record.amount == Decimal("1180")

        record = service.record_payment(record.id, {"amount": 500, "paidOn": "2024-09-20"})
        assert record.status == InvoiceStatus.PARTIALLY_PAID

        clock.today = date(2024, 10, 5)
        assert service.get_invoice(record.id).status == InvoiceStatus.OVERDUE

        changed = service.refresh_statuses()
        assert [r.id for r in changed] == [record.id]
        assert service.invoices.read(record.id).status == InvoiceStatus.OVERDUE

        record = service.record_payment(record.id, {"amount": 680})
        assert record.status == InvoiceStatus.PAID
        assert record.outstanding == 0

        record = service.reverse_payment(record.id, 1)
        assert record.status == InvoiceStatus.OVERDUE
        assert record.amount_paid == Decimal("500")

    def test_draft_edit_then_finalize_by_save(self, service, draft):
        record = service.save_invoice(draft)

        edited = service.save_invoice({**draft, "id": record.id, "items": draft["items"] * 2})
        assert edited.status == InvoiceStatus.DRAFT
        assert edited.amount == Decimal("2360")

        final = service.save_invoice({**draft, "id": record.id, "draft": False})
        assert final.status == InvoiceStatus.UNPAID
        assert final.id == record.id

    def test_edit_keeps_payments(self, service, draft):
        record = service.save_invoice({**draft, "draft": False})
        service.record_payment(record.id, {"amount": 1180})

        edited = service.save_invoice({**draft, "id": record.id, "draft": False, "notes": "Delivered"})

        assert edited.status == InvoiceStatus.PAID
        assert edited.notes == "Delivered"
        assert len(edited.payments) == 1

    def test_edit_that_reopens_paid_invoice_rejected(self, service, draft):
        record = service.save_invoice({**draft, "draft": False})
        service.record_payment(record.id, {"amount": 1180})

        bigger = {**draft, "id": record.id, "draft": False, "items": draft["items"] * 2}
        with pytest.raises(StateTransitionError):
            service.save_invoice(bigger)

        assert service.get_invoice(record.id).amount == Decimal("1180")

    def test_finalized_cannot_return_to_draft(self, service, draft):
        record = service.save_invoice({**draft, "draft": False})

        with pytest.raises(StateTransitionError):
            service.save_invoice({**draft, "id": record.id})

    def test_payment_on_draft_rejected(self, service, draft):
        record = service.save_invoice(draft)

        with pytest.raises(StateTransitionError):
            service.record_payment(record.id, {"amount": 100})

    def test_zero_payment_rejected(self, service, draft):
        record = service.save_invoice({**draft, "draft": False})

        with pytest.raises(ValidationError):
            service.record_payment(record.id, {"amount": 0})

    def test_list_filters(self, service, draft):
        service.save_invoice(draft)
        service.save_invoice({**draft, "draft": False, "customerId": "CUST-002"})

        assert len(service.list_invoices()) == 2
        assert len(service.list_invoices(status=InvoiceStatus.DRAFT)) == 1
        assert len(service.list_invoices(customer_id="CUST-002")) == 1

    def test_json_store_lifecycle(self, tmp_path, clock, draft):
        invoices = JsonFileRepository(InvoiceRecord, str(tmp_path / "invoices.json"))
        service = InvoiceService(invoices=invoices, clock=clock)

        record = service.save_invoice({**draft, "draft": False})
        service.record_payment(record.id, {"amount": 1180, "method": "UPI"})

        reloaded = InvoiceService(invoices=JsonFileRepository(InvoiceRecord, str(tmp_path / "invoices.json")),
                                  clock=clock)
        stored = reloaded.get_invoice(record.id)
        assert stored.status == InvoiceStatus.PAID
        assert stored.payments[0].method == "UPI"

    def test_legacy_status_without_payments_stays_readable(self, service):
        invoice_id = service.invoices.create(InvoiceRecord(
            invoice_date=date(2024, 9, 1),
            due_date=date(2024, 9, 30),
            customer_id="CUST-009",
            status=InvoiceStatus.PARTIALLY_PAID,
            amount=Decimal("1000"),
        ))

        assert service.get_invoice(invoice_id).status == InvoiceStatus.PARTIALLY_PAID
        assert [r.id for r in service.list_invoices()] == [invoice_id]
        assert service.refresh_statuses() == []
        assert service.invoices.read(invoice_id).status == InvoiceStatus.PARTIALLY_PAID


class TestSuggestionsNeverBlock:

    @pytest.mark.asyncio
    async def test_default_suggestion(self):
        suggestion = await InvoiceService().suggest_tax_category("silk saree")

        assert suggestion.suggestion == "unknown"
        assert suggestion.rate == Decimal("18")
        assert suggestion.confidence == 0.0
