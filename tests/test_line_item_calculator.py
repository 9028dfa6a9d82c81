"""
Tests for Line Item Calculator
Covers IGST vs CGST+SGST breakdown and exact per-item amounts
"""

from decimal import Decimal

import pytest

from engine.line_item_calculator import LineItemCalculator
from models.errors import ComputationError, ValidationError
from models.invoice import LineItem


def intra_state_item(**overrides) -> dict:
    item = {
        "description": "Shirt stitching",
        "quantity": 2,
        "unitPrice": 500,
        "applyCgst": True,
        "applySgst": True,
        "cgstRate": 9,
        "sgstRate": 9,
    }
    item.update(overrides)
    return item


class TestLineItemCalculator:
    """Test per-item tax computation"""

    def setup_method(self):
        self.calculator = LineItemCalculator()

    def test_intra_state_item(self):
        """qty 2 x 500 with CGST 9% + SGST 9%"""
        result = self.calculator.compute(intra_state_item())

        assert result.taxable_value == Decimal("1000")
        assert result.cgst_amount == Decimal("90")
        assert result.sgst_amount == Decimal("90")
        assert result.igst_amount == Decimal("0")
        assert result.line_total == Decimal("1180")

    def test_inter_state_item(self):
        item = {"quantity": 10, "unitPrice": "120.50", "applyIgst": True, "igstRate": 18}

        result = self.calculator.compute(item)

        assert result.taxable_value == Decimal("1205")
        assert result.igst_amount == Decimal("216.90")
        assert result.cgst_amount == 0
        assert result.sgst_amount == 0
        assert result.line_total == Decimal("1421.90")

    def test_tax_exempt_item(self):
        result = self.calculator.compute({"quantity": 1, "unitPrice": "2360.60"})

        assert result.taxable_value == Decimal("2360.60")
        assert result.line_total == Decimal("2360.60")

    def test_rate_ignored_when_flag_off(self):
        """A rate without its apply flag contributes nothing"""
        item = {"quantity": 1, "unitPrice": 100, "igstRate": 18}

        result = self.calculator.compute(item)

        assert result.igst_amount == 0
        assert result.line_total == Decimal("100")

    def test_amounts_are_not_rounded_per_item(self):
        result = self.calculator.compute(intra_state_item(quantity=3, unitPrice="333.33"))

        assert result.taxable_value == Decimal("999.99")
        assert result.cgst_amount == Decimal("89.9991")
        assert result.line_total == Decimal("1179.9882")

    def test_float_inputs_do_not_drift(self):
        result = self.calculator.compute({"quantity": 3, "unitPrice": 0.1})

        assert result.taxable_value == Decimal("0.3")

    def test_fractional_quantity(self):
        result = self.calculator.compute({"quantity": "2.5", "unitPrice": 40, "applyIgst": True, "igstRate": 5})

        assert result.taxable_value == Decimal("100")
        assert result.igst_amount == Decimal("5")

    def test_zero_rate_with_flag(self):
        result = self.calculator.compute(intra_state_item(cgstRate=0, sgstRate=0))

        assert result.line_total == Decimal("1000")

    def test_accepts_line_item_model(self):
        item = LineItem(quantity=Decimal("1"), unit_price=Decimal("50"))

        assert self.calculator.compute(item).line_total == Decimal("50")

    def test_compute_all_keeps_order(self):
        results = self.calculator.compute_all([
            {"quantity": 1, "unitPrice": 10},
            {"quantity": 1, "unitPrice": 20},
        ])

        assert [r.line_total for r in results] == [Decimal("10"), Decimal("20")]


class TestLineItemContract:
    """Invalid items are rejected, never corrected"""

    def setup_method(self):
        self.calculator = LineItemCalculator()

    def test_igst_with_cgst_rejected(self):
        item = intra_state_item(applyIgst=True, igstRate=18)

        with pytest.raises(ValidationError) as exc_info:
            self.calculator.compute(item)

        assert any("IGST cannot be combined" in e for e in exc_info.value.errors)

    def test_cgst_without_sgst_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.calculator.compute(intra_state_item(applySgst=False))

        assert any("applied together" in e for e in exc_info.value.errors)

    @pytest.mark.parametrize("overrides", [
        {"quantity": 0},
        {"quantity": -1},
        {"unitPrice": -10},
        {"cgstRate": -9},
        {"sgstRate": 101},
        {"quantity": "two"},
        {"quantity": True},
        {"unitPrice": "NaN"},
        {"unitPrice": "Infinity"},
    ])
    def test_invalid_numbers_rejected(self, overrides):
        with pytest.raises(ValidationError):
            self.calculator.compute(intra_state_item(**overrides))

    def test_missing_quantity_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.calculator.compute({"unitPrice": 100})

        assert any("quantity" in e for e in exc_info.value.errors)

    def test_non_mapping_rejected(self):
        with pytest.raises(ValidationError):
            self.calculator.compute(["quantity", 1])

    def test_overflow_raises_computation_error(self):
        """Products beyond supported precision are never silently rounded"""
        item = {"quantity": "12345678901234567890.123", "unitPrice": "98765432109876543210.987"}

        with pytest.raises(ComputationError):
            self.calculator.compute(item)
