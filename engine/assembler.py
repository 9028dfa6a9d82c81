"""
Invoice record assembler
Single typed entry point from a submission to an InvoiceRecord
"""

from typing import Mapping, Optional, Sequence, Union

from engine.invoice_aggregator import InvoiceAggregator
from engine.line_item_calculator import LineItemCalculator
from engine.status_machine import InvoiceStatusMachine
from models.invoice import InvoiceMetadata, InvoiceRecord, LineItem
from utils.logging import logger
from utils.validators import SubmissionValidator, ValidationResult


class InvoiceAssembler:
    """
    Builds the persisted invoice shape

    1. Validate the whole submission (every error reported at once)
    2. Compute each line item
    3. Aggregate and round
    4. Assign the initial status (Draft or Unpaid)
    """

    def __init__(
        self,
        calculator: Optional[LineItemCalculator] = None,
        aggregator: Optional[InvoiceAggregator] = None,
        status_machine: Optional[InvoiceStatusMachine] = None,
        validator: Optional[SubmissionValidator] = None,
    ):
        self.calculator = calculator or LineItemCalculator()
        self.aggregator = aggregator or InvoiceAggregator()
        self.status_machine = status_machine or InvoiceStatusMachine()
        self.validator = validator or SubmissionValidator()

    def assemble(
        self,
        line_items: Optional[Sequence[Union[LineItem, Mapping]]],
        metadata: Union[InvoiceMetadata, Mapping, None],
    ) -> InvoiceRecord:
        validation = self.validator.validate(line_items, metadata)
        return self._build(validation)

    def assemble_submission(self, payload: Mapping) -> InvoiceRecord:
        """Assemble from one dict holding `items` plus metadata keys"""

        validation = self.validator.validate_payload(payload)
        return self._build(validation)

    def _build(self, validation: ValidationResult) -> InvoiceRecord:
        if not validation:
            logger.log_error("invoice_validation_failed", {"errors": validation.errors})
        validation.raise_for_errors()

        metadata = validation.metadata
        items = tuple(validation.items)

        results = self.calculator.compute_all(items)
        totals = self.aggregator.aggregate(results)

        record = InvoiceRecord(
            invoice_number=metadata.invoice_number,
            invoice_type=metadata.invoice_type,
            invoice_date=metadata.invoice_date,
            due_date=metadata.due_date,
            customer_id=metadata.customer_id,
            company_id=metadata.company_id,
            items=items,
            totals=totals,
            status=self.status_machine.initial_status(metadata.draft),
            amount=totals.grand_total_rounded,
            round_off_applied=totals.round_off_applied,
            payment_method=metadata.payment_method,
            notes=metadata.notes,
            terms_and_conditions=metadata.terms_and_conditions,
            shipment_details=metadata.shipment_details,
        )

        logger.log_step("invoice_assembled", {
            "invoice_number": record.invoice_number,
            "items": len(items),
            "amount": str(record.amount),
            "round_off_delta": str(totals.round_off_delta),
            "status": record.status.value,
        })
        return record
