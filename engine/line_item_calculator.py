"""
Line item tax calculator
Computes taxable value and IGST/CGST/SGST breakdown for one line item
"""

from typing import Iterable, List, Mapping, Union

from pydantic import ValidationError as PydanticValidationError

from models.errors import ValidationError
from models.invoice import LineItem, LineItemResult
from utils.money import ZERO, add_all, multiply, percent_of


class LineItemCalculator:
    """
    Per-item tax computation

    taxable value = quantity x unit price
    tax amount    = taxable value x rate / 100 for each applied tax
    line total    = taxable value + IGST + CGST + SGST

    Amounts are kept exact; rounding happens once, on the invoice grand total.
    """

    def compute(self, item: Union[LineItem, Mapping]) -> LineItemResult:
        line_item = self.coerce(item)

        taxable_value = multiply(line_item.quantity, line_item.unit_price)

        igst_amount = percent_of(taxable_value, line_item.igst_rate) if line_item.apply_igst else ZERO
        cgst_amount = percent_of(taxable_value, line_item.cgst_rate) if line_item.apply_cgst else ZERO
        sgst_amount = percent_of(taxable_value, line_item.sgst_rate) if line_item.apply_sgst else ZERO

        return LineItemResult(
            taxable_value=taxable_value,
            igst_amount=igst_amount,
            cgst_amount=cgst_amount,
            sgst_amount=sgst_amount,
            line_total=add_all([taxable_value, igst_amount, cgst_amount, sgst_amount]),
        )

    def compute_all(self, items: Iterable[Union[LineItem, Mapping]]) -> List[LineItemResult]:
        return [self.compute(item) for item in items]

    @staticmethod
    def coerce(item: Union[LineItem, Mapping]) -> LineItem:
        """Parse a raw item; contract violations become ValidationError"""

        if isinstance(item, LineItem):
            return item

        if not isinstance(item, Mapping):
            raise ValidationError(f"Line item must be a mapping, got {type(item).__name__}")

        try:
            return LineItem.model_validate(item)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e
