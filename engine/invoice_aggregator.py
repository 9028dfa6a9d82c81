"""
Invoice aggregator
Sums line item results and applies the round-off policy
"""

from typing import Sequence

from models.invoice import InvoiceTotals, LineItemResult
from utils.money import add_all, round_to_unit, subtract


class InvoiceAggregator:
    """
    Invoice-level totals

    The grand total is rounded half-up to the whole currency unit. The
    difference is kept as round_off_delta so ledger reconciliation can audit it.
    """

    def aggregate(self, results: Sequence[LineItemResult]) -> InvoiceTotals:
        subtotal = add_all(r.taxable_value for r in results)
        total_igst = add_all(r.igst_amount for r in results)
        total_cgst = add_all(r.cgst_amount for r in results)
        total_sgst = add_all(r.sgst_amount for r in results)
        total_tax = add_all([total_igst, total_cgst, total_sgst])

        grand_total_raw = add_all([subtotal, total_tax])
        grand_total_rounded = round_to_unit(grand_total_raw)
        round_off_delta = subtract(grand_total_rounded, grand_total_raw)

        return InvoiceTotals(
            subtotal=subtotal,
            total_igst=total_igst,
            total_cgst=total_cgst,
            total_sgst=total_sgst,
            total_tax=total_tax,
            grand_total_raw=grand_total_raw,
            grand_total_rounded=grand_total_rounded,
            round_off_applied=round_off_delta != 0,
            round_off_delta=round_off_delta,
        )
