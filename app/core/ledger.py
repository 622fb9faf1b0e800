"""Attendance ledger rules and statistics."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from app.core.exceptions import InvariantViolationException


class AttendanceStatus(str, Enum):
    """Attendance status of a session."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PAID = "paid"
    PENDING = "pending"
    CANCELLED = "cancelled"
    OVERDUE = "overdue"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""

    CASH = "cash"
    CREDIT = "credit"
    DEBIT = "debit"
    PIX = "pix"
    TRANSFER = "transfer"


SETTLEABLE_STATUSES = {PaymentStatus.PENDING.value, PaymentStatus.OVERDUE.value}


def validate_amounts(amount: Decimal, discount: Decimal) -> None:
    """
    Check that a payment's discount fits within its amount.

    Raises:
        InvariantViolationException: On negative values or discount > amount
    """
    if amount < 0:
        raise InvariantViolationException("Payment amount cannot be negative")
    if discount < 0:
        raise InvariantViolationException("Discount cannot be negative")
    if discount > amount:
        raise InvariantViolationException(
            f"Discount ({discount}) cannot exceed amount ({amount})"
        )


def creates_payment(status: AttendanceStatus | str, amount: Decimal | None) -> bool:
    """Only a present session with a positive amount carries a payment."""
    if AttendanceStatus(status) != AttendanceStatus.PRESENT:
        return False
    return amount is not None and amount > 0


@dataclass(frozen=True)
class AttendanceStats:
    """Aggregates over a patient's attendance records."""

    total: int
    present: int
    absent: int
    late: int
    cancelled: int
    attendance_rate: float
    paid_count: int

    @property
    def absences(self) -> int:
        """Absent and cancelled sessions."""
        return self.absent + self.cancelled


def compute_stats(
    records: Iterable[Mapping[str, Any]],
    payments: Mapping[Any, Mapping[str, Any]],
) -> AttendanceStats:
    """
    Compute attendance statistics.

    Args:
        records: Attendance rows (``status`` and ``payment_id`` keys)
        payments: Linked payment rows keyed by payment id

    Returns:
        Counts per status, attendance rate (percent) and paid session count
    """
    counts = dict.fromkeys(AttendanceStatus, 0)
    paid_count = 0
    total = 0

    for record in records:
        total += 1
        counts[AttendanceStatus(record["status"])] += 1
        payment = payments.get(record.get("payment_id"))
        if payment and payment["status"] == PaymentStatus.PAID.value:
            paid_count += 1

    present = counts[AttendanceStatus.PRESENT]
    rate = round(present / total * 100, 2) if total else 0.0

    return AttendanceStats(
        total=total,
        present=present,
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
        cancelled=counts[AttendanceStatus.CANCELLED],
        attendance_rate=rate,
        paid_count=paid_count,
    )


@dataclass(frozen=True)
class FinancialSummary:
    """Money received, owed and discounted for a patient."""

    paid: Decimal
    due: Decimal
    discounts: Decimal


def net_amount(payment: Mapping[str, Any]) -> Decimal:
    """Amount after discount."""
    return Decimal(payment["amount"]) - Decimal(payment["discount"] or 0)


def financial_summary(payments: Iterable[Mapping[str, Any]]) -> FinancialSummary:
    """Sum net paid and due values, and discounts on live payments."""
    paid = Decimal("0")
    due = Decimal("0")
    discounts = Decimal("0")

    for payment in payments:
        status = payment["status"]
        if status == PaymentStatus.PAID.value:
            paid += net_amount(payment)
        elif status in SETTLEABLE_STATUSES:
            due += net_amount(payment)
        if status != PaymentStatus.CANCELLED.value:
            discounts += Decimal(payment["discount"] or 0)

    return FinancialSummary(paid=paid, due=due, discounts=discounts)
