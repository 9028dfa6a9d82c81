"""
Reporter Agent
Generates invoice reports (console, JSON, batch summary)
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Dict, List

from engine.line_item_calculator import LineItemCalculator
from models.invoice import InvoiceRecord, InvoiceStatus
from utils.money import to_json_number


class ReporterAgent:
    """
    Reporter Agent

    Generates reports in various formats:
    - Console (colored text)
    - JSON (machine readable)
    - Summary (batch view)
    """

    def __init__(self, config: dict = None, use_color: bool = True):
        self.config = config or {}
        self.calculator = LineItemCalculator()

        # ANSI color codes
        codes = {
            'green': '\033[92m',
            'red': '\033[91m',
            'yellow': '\033[93m',
            'blue': '\033[94m',
            'gray': '\033[90m',
            'bold': '\033[1m',
            'reset': '\033[0m'
        }
        self.colors = codes if use_color else {k: '' for k in codes}

    def generate_console_report(self, record: InvoiceRecord) -> str:
        """Generate detailed console report with colors"""

        c = self.colors
        totals = record.totals
        lines = []

        # Header
        lines.append("=" * 80)
        lines.append(f"{c['bold']}{record.invoice_type.value.upper()}{c['reset']}")
        lines.append("=" * 80)
        lines.append("")

        # Invoice details
        lines.append(f"{c['bold']}Invoice Details:{c['reset']}")
        lines.append(f"  Number: {record.invoice_number or '(unassigned)'}")
        lines.append(f"  Date: {record.invoice_date}")
        lines.append(f"  Due: {record.due_date or '-'}")
        lines.append(f"  Customer: {record.customer_id}")
        status_color = self._get_status_color(record.status)
        lines.append(f"  Status: {status_color}{record.status.value}{c['reset']}")
        lines.append("")

        # Line items
        lines.append("-" * 80)
        lines.append(f"{c['bold']}Line Items ({len(record.items)}){c['reset']}")
        lines.append("-" * 80)
        for idx, item in enumerate(record.items, 1):
            result = self.calculator.compute(item)
            lines.append(f"  {idx}. {item.description or '(no description)'}")
            lines.append(f"     {item.quantity} × ₹{item.unit_price:,.2f} = ₹{result.taxable_value:,.2f}")
            for label, applied, rate, amount in self._tax_parts(item, result):
                if applied:
                    lines.append(f"     {label} @ {rate}%: ₹{amount:,.2f}")
            lines.append(f"     Line Total: ₹{result.line_total:,.2f}")
        lines.append("")

        # Totals
        lines.append("-" * 80)
        lines.append(f"{c['bold']}Totals{c['reset']}")
        lines.append("-" * 80)
        lines.append(f"  Subtotal: ₹{totals.subtotal:,.2f}")
        if totals.total_igst:
            lines.append(f"  IGST: ₹{totals.total_igst:,.2f}")
        if totals.total_cgst:
            lines.append(f"  CGST: ₹{totals.total_cgst:,.2f}")
        if totals.total_sgst:
            lines.append(f"  SGST: ₹{totals.total_sgst:,.2f}")
        lines.append(f"  Total Tax: ₹{totals.total_tax:,.2f}")
        if totals.round_off_applied:
            lines.append(f"  Round Off: {c['yellow']}{self._signed(totals.round_off_delta)}{c['reset']}")
        lines.append(f"  {c['bold']}Grand Total: ₹{totals.grand_total_rounded:,.2f}{c['reset']}")
        lines.append("")

        # Payments
        if record.payments:
            lines.append("-" * 80)
            lines.append(f"{c['bold']}Payments ({len(record.payments)}){c['reset']}")
            lines.append("-" * 80)
            for payment in record.payments:
                method = f" via {payment.method}" if payment.method else ""
                lines.append(f"  • {payment.paid_on}: ₹{payment.amount:,.2f}{method}")
            lines.append(f"  Outstanding: ₹{record.outstanding:,.2f}")
            lines.append("")

        # Footer
        lines.append("=" * 80)
        lines.append(f"Report generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append("=" * 80)

        return "\n".join(lines)

    def generate_json_report(self, record: InvoiceRecord) -> str:
        """Generate JSON report"""

        report = {
            'invoice': record.to_json(),
            'lineResults': [self.calculator.compute(item).to_json() for item in record.items],
            'payment': {
                'amountPaid': to_json_number(record.amount_paid),
                'outstanding': to_json_number(record.outstanding),
            },
        }

        return json.dumps(report, indent=2)

    def generate_summary_report(self, batch_results: Dict) -> str:
        """Generate summary for batch assembly"""

        c = self.colors
        lines = []

        lines.append("=" * 80)
        lines.append(f"{c['bold']}BATCH INVOICE SUMMARY{c['reset']}")
        lines.append("=" * 80)
        lines.append("")

        lines.append(f"{c['bold']}Overview:{c['reset']}")
        lines.append(f"  Total Submissions: {batch_results['total']}")
        lines.append(f"  Assembled: {c['green']}{batch_results['assembled']}{c['reset']}")
        lines.append(f"  Rejected: {c['red']}{batch_results['rejected']}{c['reset']}")
        lines.append(f"  Rounded: {c['yellow']}{batch_results['rounded']}{c['reset']}")
        lines.append("")

        lines.append(f"{c['bold']}Amounts:{c['reset']}")
        lines.append(f"  Invoiced: ₹{batch_results['total_amount']:,.2f}")
        lines.append(f"  Tax: ₹{batch_results['total_tax']:,.2f}")
        lines.append(f"  Net Round Off: {self._signed(batch_results['total_round_off'])}")
        lines.append("")

        rejections: List[str] = batch_results.get('rejections', [])
        if rejections:
            lines.append(f"{c['red']}{c['bold']}Rejected Submissions:{c['reset']}")
            for reason in rejections:
                lines.append(f"  • {reason}")
            lines.append("")

        lines.append("=" * 80)

        return "\n".join(lines)

    @staticmethod
    def _tax_parts(item, result):
        return [
            ('IGST', item.apply_igst, item.igst_rate, result.igst_amount),
            ('CGST', item.apply_cgst, item.cgst_rate, result.cgst_amount),
            ('SGST', item.apply_sgst, item.sgst_rate, result.sgst_amount),
        ]

    @staticmethod
    def _signed(value: Decimal) -> str:
        sign = "+" if value >= 0 else "-"
        return f"{sign}₹{abs(value):,.2f}"

    def _get_status_color(self, status: InvoiceStatus) -> str:
        """Get color for status"""
        if status == InvoiceStatus.PAID:
            return self.colors['green']
        elif status == InvoiceStatus.OVERDUE:
            return self.colors['red']
        elif status in (InvoiceStatus.UNPAID, InvoiceStatus.PARTIALLY_PAID):
            return self.colors['yellow']
        else:
            return self.colors['gray']
