"""
Invoice data models using Pydantic
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, List, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from utils.money import ZERO, add_all, subtract, to_decimal, to_json_number


Money = Annotated[
    Decimal,
    BeforeValidator(to_decimal),
    PlainSerializer(to_json_number, when_used="json"),
]


class InvoiceStatus(str, Enum):
    DRAFT = "Draft"
    UNPAID = "Unpaid"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"
    OVERDUE = "Overdue"

    @classmethod
    def _missing_(cls, value):
        # Older records stored the free-text "Pending" for unpaid invoices
        if isinstance(value, str) and value.strip().lower() == "pending":
            return cls.UNPAID
        return None


class InvoiceType(str, Enum):
    TAX_INVOICE = "Tax Invoice"
    PROFORMA_INVOICE = "Proforma Invoice"
    QUOTATION = "Quotation"


class RecordModel(BaseModel):
    """camelCase on the wire, snake_case in Python, immutable"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class LineItem(RecordModel):
    """Individual line item in invoice"""

    description: str = ""
    quantity: Money = Field(gt=0)
    unit_price: Money = Field(
        ge=0,
        validation_alias=AliasChoices("unitPrice", "unit_price", "price"),
        serialization_alias="unitPrice",
    )

    apply_igst: bool = False
    apply_cgst: bool = False
    apply_sgst: bool = False
    igst_rate: Money = Field(default=ZERO, ge=0, le=100)
    cgst_rate: Money = Field(default=ZERO, ge=0, le=100)
    sgst_rate: Money = Field(default=ZERO, ge=0, le=100)

    # Optional fields
    product_id: Optional[str] = None
    hsn_sac: Optional[str] = None

    @field_validator("igst_rate", "cgst_rate", "sgst_rate", mode="before")
    @classmethod
    def _blank_rate_is_zero(cls, value):
        if value is None or value == "":
            return ZERO
        return value

    @model_validator(mode="after")
    def _check_tax_flags(self):
        if self.apply_igst and (self.apply_cgst or self.apply_sgst):
            raise ValueError("IGST cannot be combined with CGST/SGST on the same item")
        if self.apply_cgst != self.apply_sgst:
            raise ValueError("CGST and SGST must be applied together")
        return self

    def is_interstate(self) -> bool:
        return self.apply_igst

    def is_tax_exempt(self) -> bool:
        return not (self.apply_igst or self.apply_cgst or self.apply_sgst)


class LineItemResult(RecordModel):
    """Computed tax breakdown for one line item"""

    taxable_value: Money
    igst_amount: Money = ZERO
    cgst_amount: Money = ZERO
    sgst_amount: Money = ZERO
    line_total: Money


class InvoiceTotals(RecordModel):
    """Aggregated totals with the round-off adjustment retained for audit"""

    subtotal: Money = ZERO
    total_igst: Money = ZERO
    total_cgst: Money = ZERO
    total_sgst: Money = ZERO
    total_tax: Money = ZERO
    grand_total_raw: Money = ZERO
    grand_total_rounded: Money = ZERO
    round_off_applied: bool = False
    round_off_delta: Money = ZERO


class Payment(RecordModel):
    amount: Money = Field(gt=0)
    paid_on: date = Field(default_factory=date.today)
    method: str = ""
    reference: Optional[str] = None


class ShipmentDetails(RecordModel):
    ship_date: Optional[date] = None
    tracking_number: str = ""
    carrier_name: str = ""
    consignee_name: str = ""
    consignee_address: str = ""
    consignee_gstin: str = ""
    consignee_state_code: str = ""
    transportation_mode: str = ""
    lr_no: str = ""
    vehicle_no: str = ""
    date_of_supply: Optional[date] = None
    place_of_supply: str = ""


class InvoiceMetadata(RecordModel):
    """Customer and document metadata submitted with the line items"""

    invoice_number: Optional[str] = None
    invoice_type: InvoiceType = Field(
        default=InvoiceType.TAX_INVOICE,
        validation_alias=AliasChoices("type", "invoiceType", "invoice_type"),
        serialization_alias="type",
    )
    invoice_date: date = Field(default_factory=date.today)
    due_date: Optional[date] = None
    customer_id: Optional[str] = None
    company_id: Optional[str] = None
    draft: bool = False

    payment_method: str = ""
    notes: str = ""
    terms_and_conditions: str = ""
    shipment_details: Optional[ShipmentDetails] = None

    @field_validator("customer_id", "invoice_number", mode="before")
    @classmethod
    def _blank_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class InvoiceRecord(RecordModel):
    """Complete invoice as handed to the persistence collaborator"""

    id: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_type: InvoiceType = Field(
        default=InvoiceType.TAX_INVOICE,
        validation_alias=AliasChoices("type", "invoiceType", "invoice_type"),
        serialization_alias="type",
    )
    invoice_date: date
    due_date: Optional[date] = None

    # Weak references, never dereferenced here
    customer_id: str
    company_id: Optional[str] = None

    items: Tuple[LineItem, ...] = ()
    totals: InvoiceTotals = InvoiceTotals()
    status: InvoiceStatus
    amount: Money
    round_off_applied: bool = False
    payments: Tuple[Payment, ...] = ()

    payment_method: str = ""
    notes: str = ""
    terms_and_conditions: str = ""
    shipment_details: Optional[ShipmentDetails] = None

    # Assigned by the persistence boundary
    created_at: Optional[Any] = None
    updated_at: Optional[Any] = None

    @property
    def amount_paid(self) -> Decimal:
        return add_all(payment.amount for payment in self.payments)

    @property
    def outstanding(self) -> Decimal:
        return max(subtract(self.amount, self.amount_paid), ZERO)

    def is_draft(self) -> bool:
        return self.status == InvoiceStatus.DRAFT

    def with_payments(self, payments: List[Payment], status: InvoiceStatus) -> "InvoiceRecord":
        return self.model_copy(update={"payments": tuple(payments), "status": status})
