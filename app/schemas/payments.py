"""Payment ledger schemas for request/response validation."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

from app.core.ledger import PaymentMethod, PaymentStatus


class PaymentBase(BaseModel):
    """Money fields shared by payment inputs.

    ``discount <= amount`` is checked by the ledger, not here, so a violation
    is reported as an invariant violation.
    """

    amount: Decimal = Field(..., decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), decimal_places=2)
    method: PaymentMethod = PaymentMethod.CASH
    status: PaymentStatus = PaymentStatus.PENDING
    is_recurring: bool = False
    recurrence_day: int | None = Field(None, ge=1, le=31)


class PaymentCreate(PaymentBase):
    """Schema for recording a standalone payment."""

    patient_id: UUID
    payment_date: date
    # Pending payment that this one settles
    settles_payment_id: UUID | None = None


class MarkPaidRequest(BaseModel):
    """Schema for settling a pending payment."""

    paid_at: datetime | None = None


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    id: UUID
    tenant_id: UUID
    patient_id: UUID
    amount: Decimal
    discount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    payment_date: date
    paid_at: datetime | None = None
    is_recurring: bool
    recurrence_unit: str | None = None
    recurrence_interval: int | None = None
    recurring_charge_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("amount", "discount", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class RecurringChargeResponse(BaseModel):
    """Schema for a scheduled monthly charge."""

    id: UUID
    tenant_id: UUID
    patient_id: UUID
    template_payment_id: UUID | None = None
    amount: Decimal
    discount: Decimal
    method: PaymentMethod
    day_of_month: int
    next_charge_date: date
    is_active: bool

    model_config = {"from_attributes": True}

    @field_serializer("amount", "discount", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class MaterializeChargesResponse(BaseModel):
    """Payments generated from due recurring charges."""

    as_of: date
    created: list[PaymentResponse]


class FinancialSummaryResponse(BaseModel):
    """Money received, owed and discounted for a patient."""

    patient_id: UUID
    paid: Decimal
    due: Decimal
    discounts: Decimal

    @field_serializer("paid", "due", "discounts", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)
