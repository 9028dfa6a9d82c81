"""
Validation Layer for Invoice Submissions
Exhaustive validation of raw submissions before any tax computation
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from models.errors import ValidationError
from models.invoice import InvoiceMetadata, LineItem


class ValidationResult:
    """Result of validation check, with the parsed submission when valid"""

    def __init__(self, is_valid: bool, errors: List[str] = None):
        self.is_valid = is_valid
        self.errors = errors or []
        self.items: List[LineItem] = []
        self.metadata: Optional[InvoiceMetadata] = None

    def __bool__(self):
        return self.is_valid

    def add_error(self, error: str):
        self.errors.append(error)
        self.is_valid = False

    def raise_for_errors(self):
        if not self.is_valid:
            raise ValidationError(
                f"Invoice submission rejected ({len(self.errors)} error(s))",
                list(self.errors),
            )


class SubmissionValidator:
    """
    Comprehensive submission validator
    Collects every problem with a submission instead of stopping at the first
    """

    ITEM_KEYS = ("items", "lineItems", "line_items")

    def __init__(self):
        self.gstin_pattern = re.compile(r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[0-9]{1}[Z]{1}[0-9A-Z]{1}$')

    def validate(
        self,
        line_items: Optional[Sequence[Union[LineItem, Mapping]]],
        metadata: Union[InvoiceMetadata, Mapping, None],
    ) -> ValidationResult:
        """
        Validate line items and metadata together

        Args:
            line_items: Raw dicts or LineItem models
            metadata: Raw dict or InvoiceMetadata

        Returns:
            ValidationResult with is_valid flag, error list and parsed models
        """
        result = ValidationResult(is_valid=True)

        # 1. Metadata
        self._validate_metadata(metadata, result)

        # 2. Line items
        self._validate_line_items(line_items, result)

        # 3. Business rules (only meaningful once metadata parsed)
        if result.metadata is not None:
            self._validate_business_rules(result)
            self._validate_gstins(result)

        return result

    def validate_payload(self, payload: Mapping) -> ValidationResult:
        """Validate a single-dict submission (HTTP / IPC body)"""

        if not isinstance(payload, Mapping):
            result = ValidationResult(is_valid=False)
            result.add_error("Submission must be a JSON object")
            return result

        items = None
        metadata: Dict[str, Any] = {}
        for key, value in payload.items():
            if key in self.ITEM_KEYS:
                items = value
            else:
                metadata[key] = value

        return self.validate(items, metadata)

    def _validate_metadata(self, metadata, result: ValidationResult):
        if isinstance(metadata, InvoiceMetadata):
            result.metadata = metadata
            return

        if metadata is None:
            metadata = {}
        if not isinstance(metadata, Mapping):
            result.add_error("Invoice metadata must be a dictionary")
            return

        try:
            result.metadata = InvoiceMetadata.model_validate(dict(metadata))
        except PydanticValidationError as e:
            for error in ValidationError.from_pydantic(e).errors:
                result.add_error(error)

    def _validate_line_items(self, line_items, result: ValidationResult):
        if line_items is None:
            line_items = []
        if isinstance(line_items, (str, bytes, Mapping)) or not isinstance(line_items, Sequence):
            result.add_error("Line items must be a list")
            return

        for i, item in enumerate(line_items, 1):
            if isinstance(item, LineItem):
                result.items.append(item)
                continue
            if not isinstance(item, Mapping):
                result.add_error(f"Line item {i} must be a dictionary")
                continue
            try:
                result.items.append(LineItem.model_validate(dict(item)))
            except PydanticValidationError as e:
                for error in ValidationError.from_pydantic(e).errors:
                    result.add_error(f"Line item {i}: {error}")

    def _validate_business_rules(self, result: ValidationResult):
        metadata = result.metadata

        if metadata.customer_id is None:
            result.add_error("Missing required field: customerId")

        # Drafts may be saved before any item is added
        if not metadata.draft and not result.items and not self._had_item_errors(result):
            result.add_error("A finalized invoice must have at least one line item")

        if metadata.due_date and metadata.due_date < metadata.invoice_date:
            result.add_error(
                f"Due date {metadata.due_date} is before invoice date {metadata.invoice_date}"
            )

    def _validate_gstins(self, result: ValidationResult):
        shipment = result.metadata.shipment_details
        if shipment and shipment.consignee_gstin:
            if not self.gstin_pattern.match(shipment.consignee_gstin):
                result.add_error(f"Invalid consignee GSTIN format: {shipment.consignee_gstin}")

    @staticmethod
    def _had_item_errors(result: ValidationResult) -> bool:
        return any(error.startswith("Line item") for error in result.errors)


# Convenience function
def validate_submission(payload: Mapping) -> ValidationResult:
    """
    Quick validation function

    Usage:
        result = validate_submission(request_json)
        if result:
            # Assemble invoice
        else:
            print(f"Validation errors: {result.errors}")
    """
    validator = SubmissionValidator()
    return validator.validate_payload(payload)
