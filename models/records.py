"""
Back-office record models (purchases, tailoring measurements, company profile)
"""

from datetime import date
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, field_validator

from models.invoice import InvoiceStatus, Money, RecordModel
from utils.money import ZERO


COMPANY_DOCUMENT_ID = "main"


class PurchaseInvoice(RecordModel):
    """Vendor bill; shares the invoice status enum and timestamp conventions"""

    id: Optional[str] = None
    invoice_id: str
    vendor: str
    bill_date: date = Field(
        validation_alias=AliasChoices("date", "billDate", "bill_date"),
        serialization_alias="date",
    )
    due_date: Optional[date] = None
    amount: Money = Field(ge=0)
    amount_paid: Money = Field(default=ZERO, ge=0)
    status: InvoiceStatus = InvoiceStatus.UNPAID
    created_at: Optional[Any] = None
    updated_at: Optional[Any] = None

    @field_validator("status")
    @classmethod
    def _no_draft_purchases(cls, value):
        if value == InvoiceStatus.DRAFT:
            raise ValueError("purchase invoices have no draft state")
        return value


class MeasurementValue(RecordModel):
    name: str
    value: Money = Field(ge=0)
    unit: str = "in"


class Measurement(RecordModel):
    id: Optional[str] = None
    unique_id: str
    customer_id: Optional[str] = None
    customer_name: str
    type: str
    custom_type: Optional[str] = None
    values: List[MeasurementValue] = []
    recorded_date: date = Field(default_factory=date.today)
    delivery_date: Optional[date] = None
    notes: str = ""
    created_at: Optional[Any] = None
    updated_at: Optional[Any] = None

    @field_validator("custom_type")
    @classmethod
    def _custom_type_needs_custom(cls, value, info):
        if value and info.data.get("type") != "Custom":
            raise ValueError("customType is only used when type is 'Custom'")
        return value


class CompanyData(RecordModel):
    """Company profile printed on invoices (single document)"""

    id: str = COMPANY_DOCUMENT_ID
    name: str
    address: str = ""
    phone: str = ""
    phone2: Optional[str] = None
    email: str = ""
    gstin: Optional[str] = None
    # Stored with snake_case keys
    bank_account_name: Optional[str] = Field(default=None, alias="bank_account_name")
    bank_name: Optional[str] = Field(default=None, alias="bank_name")
    bank_account: Optional[str] = Field(default=None, alias="bank_account")
    bank_ifsc: Optional[str] = Field(default=None, alias="bank_ifsc")
    created_at: Optional[Any] = None
    updated_at: Optional[Any] = None
