"""
AI suggestion result models
"""

from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from models.invoice import Money, RecordModel


DEFAULT_TAX_CATEGORY = "unknown"
DEFAULT_TAX_RATE = Decimal("18")


class TaxSuggestion(RecordModel):
    """Suggested tax category (HSN/SAC) for an item description"""

    suggestion: str = DEFAULT_TAX_CATEGORY
    rate: Money = Field(default=DEFAULT_TAX_RATE, ge=0, le=100)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    rationale: str = ""
    source: str = "default"


class SalesSuggestions(RecordModel):
    suggestions: List[str] = []
    source: str = "default"


class TaxCategoryOutput(BaseModel):
    """Structured LLM output for tax category suggestions"""

    hsn_sac: str = Field(description="The suggested HSN code (goods) or SAC code (services)")
    gst_rate: float = Field(description="The applicable GST rate in percent, e.g. 5, 12, 18 or 28")
    confidence: float = Field(description="Confidence between 0 and 1 in the suggestion")
    rationale: str = Field(default="", description="One sentence explaining the classification")


class SalesStrategyOutput(BaseModel):
    """Structured LLM output for sales enhancement suggestions"""

    suggestions: List[str] = Field(description="3-7 actionable suggestions to improve sales")
