"""Tests for attendance ledger rules."""

from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.exceptions import InvariantViolationException
from app.core.ledger import (
    AttendanceStatus,
    compute_stats,
    creates_payment,
    financial_summary,
    net_amount,
    validate_amounts,
)


def test_validate_amounts() -> None:
    """Discount may equal but never exceed the amount."""
    validate_amounts(Decimal("100"), Decimal("100"))
    with pytest.raises(InvariantViolationException):
        validate_amounts(Decimal("100"), Decimal("100.01"))
    with pytest.raises(InvariantViolationException):
        validate_amounts(Decimal("-1"), Decimal("0"))
    with pytest.raises(InvariantViolationException):
        validate_amounts(Decimal("10"), Decimal("-1"))


@pytest.mark.parametrize(
    ("status", "amount", "expected"),
    [
        (AttendanceStatus.PRESENT, Decimal("150"), True),
        (AttendanceStatus.PRESENT, Decimal("0"), False),
        (AttendanceStatus.PRESENT, None, False),
        (AttendanceStatus.ABSENT, Decimal("150"), False),
        ("late", Decimal("150"), False),
    ],
)
def test_creates_payment(status, amount, expected: bool) -> None:
    """Test which sessions carry a payment."""
    assert creates_payment(status, amount) is expected


def test_compute_stats() -> None:
    """Test counts, rate and paid sessions."""
    paid_id, pending_id = uuid4(), uuid4()
    records = [
        {"status": "present", "payment_id": paid_id},
        {"status": "present", "payment_id": pending_id},
        {"status": "late", "payment_id": None},
        {"status": "cancelled", "payment_id": None},
    ]
    payments = {paid_id: {"status": "paid"}, pending_id: {"status": "pending"}}

    stats = compute_stats(records, payments)

    assert stats.total == 4
    assert stats.present == 2
    assert stats.late == 1
    assert stats.absences == 1
    assert stats.attendance_rate == 50.0
    assert stats.paid_count == 1


def test_compute_stats_empty() -> None:
    """Test that no records gives a zero rate."""
    stats = compute_stats([], {})
    assert stats.total == 0
    assert stats.attendance_rate == 0.0


def test_financial_summary() -> None:
    """Test paid, due and discount totals."""
    summary = financial_summary(
        [
            {"amount": Decimal("200"), "discount": Decimal("20"), "status": "paid"},
            {"amount": Decimal("100"), "discount": Decimal("0"), "status": "pending"},
            {"amount": Decimal("100"), "discount": Decimal("5"), "status": "overdue"},
            {"amount": Decimal("300"), "discount": Decimal("30"), "status": "cancelled"},
        ]
    )

    assert summary.paid == Decimal("180")
    assert summary.due == Decimal("195")
    assert summary.discounts == Decimal("25")


def test_net_amount() -> None:
    """Test amount after discount."""
    assert net_amount({"amount": Decimal("150.00"), "discount": None}) == Decimal("150.00")
