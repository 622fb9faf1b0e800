"""Professional schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class ProfessionalBase(BaseModel):
    """Base professional schema with common fields."""

    name: str = Field(..., min_length=1, max_length=200)
    specialty: str | None = Field(None, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(None, min_length=7, max_length=20)


class ProfessionalCreate(ProfessionalBase):
    """Schema for creating a professional."""


class ProfessionalResponse(ProfessionalBase):
    """Schema for professional response."""

    id: UUID
    tenant_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProfessionalListResponse(BaseModel):
    """Schema for professional list response."""

    total: int
    items: list[ProfessionalResponse]
