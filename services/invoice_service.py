"""
Invoice Service
Transport-neutral operations shared by the HTTP surface, the desktop bridge and the CLI
"""

from datetime import date
from typing import Callable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from agents.suggestion_agent import FallbackSuggestionProvider, SuggestionProvider
from engine.assembler import InvoiceAssembler
from engine.status_machine import InvoiceStatusMachine
from models.errors import RecordNotFound, StateTransitionError, ValidationError
from models.invoice import InvoiceRecord, InvoiceStatus, Payment
from models.records import COMPANY_DOCUMENT_ID, CompanyData
from models.suggestion import SalesSuggestions, TaxSuggestion
from storage.repository import InMemoryRepository, Repository
from utils.logging import logger


class InvoiceService:
    """
    Invoice Service

    Coordinates:
    1. Assembling submissions into records
    2. Persisting through the repository collaborator
    3. Status changes (finalize, payments, reversals, overdue refresh)
    4. Company profile and best-effort AI suggestions
    """

    def __init__(
        self,
        invoices: Optional[Repository[InvoiceRecord]] = None,
        company: Optional[Repository[CompanyData]] = None,
        assembler: Optional[InvoiceAssembler] = None,
        suggestions: Optional[SuggestionProvider] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.clock = clock
        self.status_machine = InvoiceStatusMachine(clock=clock)
        self.assembler = assembler or InvoiceAssembler(status_machine=self.status_machine)
        self.invoices = invoices or InMemoryRepository(InvoiceRecord, name="invoices")
        self.company = company or InMemoryRepository(CompanyData, name="company")
        self.suggestions = suggestions or FallbackSuggestionProvider()

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def save_invoice(self, payload: Mapping) -> InvoiceRecord:
        """
        Create or replace an invoice from a submission

        A submission carrying the id of an existing invoice replaces its items
        and metadata. Recorded payments are kept and the status is re-derived
        from the existing status, so a paid or finalized invoice cannot be
        silently moved back.
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("Submission must be a JSON object")

        record = self.assembler.assemble_submission(payload)
        invoice_id = payload.get("id") or None
        existing = self.invoices.read(invoice_id) if invoice_id else None

        if existing is None:
            invoice_id = self.invoices.create(record, record_id=invoice_id)
            logger.log_step("invoice_created", {"invoice_id": invoice_id, "status": record.status.value})
            return self.invoices.read(invoice_id)

        record = self._merge_with_existing(existing, record)
        if not self.invoices.update(invoice_id, record):
            raise RecordNotFound("Invoice", invoice_id)

        logger.log_step("invoice_updated", {"invoice_id": invoice_id, "status": record.status.value})
        return self.invoices.read(invoice_id)

    def _merge_with_existing(self, existing: InvoiceRecord, record: InvoiceRecord) -> InvoiceRecord:
        if existing.is_draft():
            if record.is_draft():
                return record
            return self.status_machine.finalize(record.model_copy(update={"status": InvoiceStatus.DRAFT}))

        if record.is_draft():
            raise StateTransitionError(existing.status, InvoiceStatus.DRAFT, "finalized invoices cannot return to draft")

        carried = record.model_copy(update={"payments": existing.payments, "status": existing.status})
        return self.status_machine.resolve(carried, self.clock())

    def create_invoice(self, line_items, metadata) -> InvoiceRecord:
        record = self.assembler.assemble(line_items, metadata)
        invoice_id = self.invoices.create(record)
        logger.log_step("invoice_created", {"invoice_id": invoice_id, "status": record.status.value})
        return self.invoices.read(invoice_id)

    def get_invoice(self, invoice_id: str) -> Optional[InvoiceRecord]:
        """Stored invoice with its advisory overdue status applied"""
        record = self.invoices.read(invoice_id)
        if record is None:
            return None
        return self.status_machine.refresh(record, self.clock())

    def list_invoices(self, status: Optional[InvoiceStatus] = None, customer_id: Optional[str] = None) -> List[InvoiceRecord]:
        today = self.clock()
        records = [self.status_machine.refresh(r, today) for r in self.invoices.list()]

        if status is not None:
            records = [r for r in records if r.status == status]
        if customer_id is not None:
            records = [r for r in records if r.customer_id == customer_id]
        return records

    def delete_invoice(self, invoice_id: str) -> bool:
        deleted = self.invoices.delete(invoice_id)
        if deleted:
            logger.log_step("invoice_deleted", {"invoice_id": invoice_id})
        return deleted

    def finalize_invoice(self, invoice_id: str) -> InvoiceRecord:
        record = self._require(invoice_id)
        return self._store(invoice_id, self.status_machine.finalize(record, self.clock()))

    def record_payment(self, invoice_id: str, payment: Union[Payment, Mapping]) -> InvoiceRecord:
        record = self._require(invoice_id)
        payment = self._parse_payment(payment)
        return self._store(invoice_id, self.status_machine.apply_payment(record, payment, self.clock()))

    def reverse_payment(self, invoice_id: str, index: int) -> InvoiceRecord:
        record = self._require(invoice_id)
        return self._store(invoice_id, self.status_machine.reverse_payment(record, index, self.clock()))

    def refresh_statuses(self) -> List[InvoiceRecord]:
        """Persist advisory overdue transitions; returns the changed invoices"""
        today = self.clock()
        changed = []
        for record in self.invoices.list():
            refreshed = self.status_machine.refresh(record, today)
            if refreshed.status != record.status:
                changed.append(self._store(record.id, refreshed))
        return changed

    def _require(self, invoice_id: str) -> InvoiceRecord:
        record = self.invoices.read(invoice_id)
        if record is None:
            raise RecordNotFound("Invoice", invoice_id)
        return record

    def _store(self, invoice_id: str, record: InvoiceRecord) -> InvoiceRecord:
        if not self.invoices.update(invoice_id, record):
            raise RecordNotFound("Invoice", invoice_id)
        return self.invoices.read(invoice_id)

    @staticmethod
    def _parse_payment(payment: Union[Payment, Mapping]) -> Payment:
        if isinstance(payment, Payment):
            return payment
        if not isinstance(payment, Mapping):
            raise ValidationError("Payment must be a JSON object")
        try:
            return Payment.model_validate(dict(payment))
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e, prefix="payment") from e

    # ------------------------------------------------------------------
    # Company profile
    # ------------------------------------------------------------------

    def get_company(self) -> Optional[CompanyData]:
        return self.company.read(COMPANY_DOCUMENT_ID)

    def save_company(self, payload: Union[CompanyData, Mapping]) -> CompanyData:
        if isinstance(payload, CompanyData):
            company = payload
        elif isinstance(payload, Mapping):
            try:
                company = CompanyData.model_validate({**payload, "id": COMPANY_DOCUMENT_ID})
            except PydanticValidationError as e:
                raise ValidationError.from_pydantic(e, prefix="company") from e
        else:
            raise ValidationError("Company information must be a JSON object")

        if self.company.read(COMPANY_DOCUMENT_ID) is None:
            self.company.create(company, record_id=COMPANY_DOCUMENT_ID)
        elif not self.company.update(COMPANY_DOCUMENT_ID, company):
            raise RecordNotFound("Company", COMPANY_DOCUMENT_ID)

        logger.log_step("company_saved", {"name": company.name})
        return self.company.read(COMPANY_DOCUMENT_ID)

    # ------------------------------------------------------------------
    # Suggestions (best-effort)
    # ------------------------------------------------------------------

    async def suggest_tax_category(self, description: str) -> TaxSuggestion:
        return await self.suggestions.suggest_tax_category(description)

    async def suggest_sales_strategies(self, business_context: Optional[str] = None) -> SalesSuggestions:
        return await self.suggestions.suggest_sales_strategies(business_context)
