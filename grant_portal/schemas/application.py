from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field
from grant_portal.models.enums import ApplicationStatus


class GrantApplicationCreate(BaseModel):
    year: Optional[int] = Field(None, description="Scheme year (defaults to current year)")


class GrantApplicationUpdate(BaseModel):
    """Fields an applicant may change on their own application."""
    status: Optional[ApplicationStatus] = None
    agricultural_return_completed: Optional[bool] = None
    land_declaration_completed: Optional[bool] = None
    supporting_docs_completed: Optional[bool] = None


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    resubmission_reason: Optional[str] = None


class GrantApplicationRead(BaseModel):
    id: int
    public_id: str
    user_id: int
    status: ApplicationStatus
    year: int
    progress_percentage: int
    agricultural_return_completed: bool
    land_declaration_completed: bool
    consent_form_completed: bool
    supporting_docs_completed: bool
    digital_signature: Optional[str] = None
    consent_name: Optional[str] = None
    consent_address: Optional[str] = None
    consent_farm_code: Optional[str] = None
    consent_email: Optional[str] = None
    resubmission_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AdminGrantApplicationRead(GrantApplicationRead):
    user_email: Optional[str] = None
    user_first_name: Optional[str] = None
    user_last_name: Optional[str] = None


class AgriculturalReturnUpsert(BaseModel):
    application_id: int
    farm_details_data: Optional[dict[str, Any]] = None
    accreditation_data: Optional[dict[str, Any]] = None
    management_plans: Optional[dict[str, Any]] = None
    facilities_data: Optional[dict[str, Any]] = None
    livestock_data: Optional[dict[str, Any]] = None
    tier3_data: Optional[dict[str, Any]] = None
    financial_data: Optional[dict[str, Any]] = None
    declaration_name: Optional[str] = None
    declaration_date: Optional[datetime] = None
    declaration_signature: Optional[str] = None
    is_complete: bool = False
    completed_sections: Optional[list[str]] = None


class AgriculturalReturnRead(AgriculturalReturnUpsert):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
