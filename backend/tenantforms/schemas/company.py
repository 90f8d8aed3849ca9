"""Company, onboarding and administration Pydantic schemas."""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, ValidationError, field_validator

from tenantforms.models.company import CompanyStatus

_url_adapter = TypeAdapter(HttpUrl)


class CompanyBasicInfo(BaseModel):
    """Onboarding step 2."""
    company_name: str = Field(..., min_length=2, max_length=255)
    industry: str = Field(..., min_length=1, max_length=100)
    size: str = Field(..., min_length=1, max_length=50)
    website: Optional[str] = None
    phone: str = Field(..., min_length=10, max_length=50)
    description: Optional[str] = None

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        try:
            _url_adapter.validate_python(v)
        except ValidationError:
            raise ValueError("Please enter a valid URL")
        return v


class CompanyAddress(BaseModel):
    """Onboarding step 3."""
    street: str = Field(..., min_length=5, max_length=255)
    city: str = Field(..., min_length=2, max_length=100)
    state: str = Field(..., min_length=2, max_length=100)
    country: str = Field(..., min_length=2, max_length=100)
    zip_code: str = Field(..., min_length=3, max_length=20)


class CompanyBranding(BaseModel):
    """Onboarding step 4."""
    tax_id: str = Field(..., min_length=5, max_length=100)
    logo_file_id: Optional[int] = None


class CompanyDocuments(BaseModel):
    """Onboarding step 5."""
    business_registration_file_id: int
    tax_document_file_id: int
    proof_of_address_file_id: int
    certification_file_ids: List[int] = []


class CompanyUpdate(BaseModel):
    """Schema for super admin edits of company details."""
    company_name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    description: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    tax_id: Optional[str] = None


class RejectCompany(BaseModel):
    """Schema for rejecting a company application."""
    reason: str = Field(..., min_length=1)


class SuspendCompany(BaseModel):
    """Schema for suspending a company."""
    reason: Optional[str] = None


class BulkCompanyAction(BaseModel):
    """Schema for bulk approve/reject."""
    company_ids: List[int] = Field(..., min_length=1)
    reason: Optional[str] = None


class CompanyResponse(BaseModel):
    """Schema for company responses."""
    id: int
    company_name: Optional[str]
    email: str
    phone: Optional[str]
    website: Optional[str]
    industry: Optional[str]
    size: Optional[str]
    description: Optional[str]
    street: Optional[str]
    city: Optional[str]
    state: Optional[str]
    country: Optional[str]
    zip_code: Optional[str]
    tax_id: Optional[str]
    logo_file_id: Optional[int]
    business_registration_file_id: Optional[int]
    tax_document_file_id: Optional[int]
    proof_of_address_file_id: Optional[int]
    certification_file_ids: List[int]
    status: CompanyStatus
    current_step: int
    completed_steps: List[int]
    created_by_id: int
    approved_by_id: Optional[int]
    approved_at: Optional[datetime]
    rejected_by_id: Optional[int]
    rejected_at: Optional[datetime]
    rejection_reason: Optional[str]
    submitted_at: Optional[datetime]
    suspended_at: Optional[datetime]
    suspension_reason: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class OnboardingProgress(BaseModel):
    """Schema for the onboarding wizard state."""
    company: CompanyResponse
    current_step: int
    completed_steps: List[int]
    can_edit: bool
    redirect_to: str


class CompanyListResponse(BaseModel):
    """Schema for paginated company lists."""
    items: List[CompanyResponse]
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class BulkActionResult(BaseModel):
    """Per-company outcome of a bulk action."""
    company_id: int
    success: bool
    error: Optional[str] = None


class BulkActionResponse(BaseModel):
    """Schema for bulk action responses."""
    results: List[BulkActionResult]
    succeeded: int
    failed: int
