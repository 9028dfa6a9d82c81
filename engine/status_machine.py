"""
Invoice status machine
Validates status transitions and derives status from payments and due date
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, Optional

from models.errors import StateTransitionError, ValidationError
from models.invoice import InvoiceRecord, InvoiceStatus, Payment
from utils.logging import logger
from utils.money import ZERO, add_all


S = InvoiceStatus

TRANSITIONS: Dict[InvoiceStatus, FrozenSet[InvoiceStatus]] = {
    S.DRAFT: frozenset({S.UNPAID}),
    S.UNPAID: frozenset({S.PARTIALLY_PAID, S.PAID, S.OVERDUE}),
    S.PARTIALLY_PAID: frozenset({S.PAID, S.OVERDUE}),
    S.OVERDUE: frozenset({S.PARTIALLY_PAID, S.PAID}),
    S.PAID: frozenset(),
}

# Reachable only through an explicit reversal action
REVERSAL_TARGETS = frozenset({S.UNPAID, S.PARTIALLY_PAID, S.OVERDUE})


class InvoiceStatusMachine:
    """
    Invoice payment lifecycle

    Draft -> Unpaid -> {Partially Paid, Paid, Overdue}
    Partially Paid -> {Paid, Overdue}
    Overdue -> {Partially Paid, Paid}
    Paid is terminal unless a payment is explicitly reversed.

    Status is never set directly: it is derived from recorded payments against
    the invoice amount and from the due date, then checked against the table.
    """

    def __init__(self, clock: Callable[[], date] = date.today):
        self.clock = clock

    # ------------------------------------------------------------------
    # Pure rules
    # ------------------------------------------------------------------

    @staticmethod
    def initial_status(draft: bool) -> InvoiceStatus:
        return S.DRAFT if draft else S.UNPAID

    @staticmethod
    def can_transition(current: InvoiceStatus, target: InvoiceStatus, reversal: bool = False) -> bool:
        if current == target:
            return True
        if reversal:
            return current != S.DRAFT and target in REVERSAL_TARGETS
        return target in TRANSITIONS[current]

    def transition(self, current: InvoiceStatus, target: InvoiceStatus, reversal: bool = False) -> InvoiceStatus:
        if not self.can_transition(current, target, reversal=reversal):
            reason = "paid invoices only change through a payment reversal" if current == S.PAID else ""
            raise StateTransitionError(current, target, reason)

        if current != target:
            logger.log_step("status_transition", {
                "from": current.value,
                "to": target.value,
                "reversal": reversal,
            })
        return target

    def derive(
        self,
        amount: Decimal,
        amount_paid: Decimal,
        due_date: Optional[date],
        today: Optional[date] = None,
    ) -> InvoiceStatus:
        """Status implied by the payment and due-date facts (never Draft)"""

        today = today or self.clock()

        if amount_paid >= amount:
            return S.PAID
        if due_date is not None and due_date < today:
            return S.OVERDUE
        if amount_paid > ZERO:
            return S.PARTIALLY_PAID
        return S.UNPAID

    # ------------------------------------------------------------------
    # Record operations (each returns a new record)
    # ------------------------------------------------------------------

    def resolve(self, record: InvoiceRecord, today: Optional[date] = None, reversal: bool = False) -> InvoiceRecord:
        """Re-derive the status of a finalized invoice and validate the move"""

        target = self.derive(record.amount, record.amount_paid, record.due_date, today)
        status = self.transition(record.status, target, reversal=reversal)
        if status == record.status:
            return record
        return record.model_copy(update={"status": status})

    def finalize(self, record: InvoiceRecord, today: Optional[date] = None) -> InvoiceRecord:
        """Draft -> Unpaid, then whatever the facts imply"""

        status = self.transition(record.status, S.UNPAID)
        finalized = record.model_copy(update={"status": status})
        return self.resolve(finalized, today)

    def apply_payment(self, record: InvoiceRecord, payment: Payment, today: Optional[date] = None) -> InvoiceRecord:
        if payment.amount <= ZERO:
            raise ValidationError("Payment amount must be positive")
        if record.status == S.DRAFT:
            raise StateTransitionError(record.status, S.PARTIALLY_PAID, "finalize the draft before recording payments")
        if record.status == S.PAID:
            raise StateTransitionError(record.status, S.PAID, "invoice is already paid")

        payments = list(record.payments) + [payment]
        target = self.derive(record.amount, add_all(p.amount for p in payments), record.due_date, today)
        status = self.transition(record.status, target)

        logger.log_step("payment_applied", {
            "invoice_id": record.id,
            "payment": str(payment.amount),
            "status": status.value,
        })
        return record.with_payments(payments, status)

    def reverse_payment(self, record: InvoiceRecord, index: int, today: Optional[date] = None) -> InvoiceRecord:
        """Explicit reversal of one recorded payment; the only way out of Paid"""

        if not 0 <= index < len(record.payments):
            raise ValidationError(f"No payment at position {index}")

        payments = [p for i, p in enumerate(record.payments) if i != index]
        target = self.derive(record.amount, add_all(p.amount for p in payments), record.due_date, today)
        status = self.transition(record.status, target, reversal=True)

        logger.log_step("payment_reversed", {
            "invoice_id": record.id,
            "payment": str(record.payments[index].amount),
            "status": status.value,
        })
        return record.with_payments(payments, status)

    def refresh(self, record: InvoiceRecord, today: Optional[date] = None) -> InvoiceRecord:
        """
        Advisory overdue check for reads; never raises

        Drafts and paid invoices are left alone. A stored status that cannot
        legally reach the derived one (legacy data) is kept as stored.
        """

        if record.status in (S.DRAFT, S.PAID):
            return record

        target = self.derive(record.amount, record.amount_paid, record.due_date, today)
        if not self.can_transition(record.status, target):
            logger.log_warning("status_refresh_skipped", {
                "invoice_id": record.id,
                "status": record.status.value,
                "derived": target.value,
            })
            return record
        return self.resolve(record, today)
