"""Guest check-in schemas."""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from staydesk.schemas.base import BaseSchema
from staydesk.models.enums import DocumentType, CheckInStatus


class GuestCheckInCreate(BaseSchema):
    """Public check-in form submission."""

    booking_code: str = Field(..., max_length=20)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    birth_city: str = Field(..., min_length=1, max_length=100)
    birth_province: str = Field(..., min_length=1, max_length=10)
    residence_street: str = Field(..., min_length=1, max_length=255)
    residence_postal_code: str = Field(..., min_length=1, max_length=20)
    residence_city: str = Field(..., min_length=1, max_length=100)
    residence_province: str = Field(..., min_length=1, max_length=10)
    fiscal_code: str = Field(..., min_length=1, max_length=32)
    document_type: DocumentType
    document_number: str = Field(..., min_length=1, max_length=50)
    document_issue_date: date
    document_expiry_date: date
    is_exempt: bool = False
    exemption_reason: Optional[str] = None

    @field_validator("booking_code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.upper()

    @field_validator("birth_province", "residence_province", "fiscal_code")
    @classmethod
    def upper(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def validate_document_dates(self):
        """Document must expire after it was issued."""
        if self.document_expiry_date <= self.document_issue_date:
            raise ValueError("document_expiry_date must be after document_issue_date")
        return self


class GuestCheckInCreated(BaseSchema):
    """Response to a check-in submission."""

    success: bool = True
    message: str = "Check-in data saved"
    check_in_id: UUID


class GuestCheckInResponse(BaseSchema):
    """Check-in as seen by staff."""

    id: UUID
    booking_id: UUID
    first_name: str
    last_name: str
    date_of_birth: date
    document_type: DocumentType
    document_number: str
    status: CheckInStatus
    submitted_at: datetime
