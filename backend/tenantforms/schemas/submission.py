"""Form submission Pydantic schemas."""

from datetime import datetime
from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, EmailStr, Field

from tenantforms.models.form import SubmissionStatus


FILTER_OPERATORS = [
    "equals",
    "not_equals",
    "contains",
    "not_contains",
    "starts_with",
    "ends_with",
    "greater_than",
    "greater_than_or_equal",
    "less_than",
    "less_than_or_equal",
    "in",
    "not_in",
    "is_null",
    "is_not_null",
    "between",
]


class SubmissionCreate(BaseModel):
    """Schema for starting or completing a submission."""
    data: Dict[str, Any] = {}
    status: SubmissionStatus = SubmissionStatus.COMPLETED
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class SubmissionUpdate(BaseModel):
    """Schema for continuing a draft or editing a submission."""
    data: Dict[str, Any] = {}
    status: Optional[SubmissionStatus] = None
    password: Optional[str] = None
    resume_token: Optional[str] = None


class SubmissionResponse(BaseModel):
    """Schema for submission responses."""
    id: int
    form_id: int
    form_version: int
    company_id: int
    data: Dict[str, Any]
    status: SubmissionStatus
    submitted_by_id: Optional[int]
    submitted_by_email: Optional[str]
    is_anonymous: bool
    started_at: datetime
    submitted_at: Optional[datetime]
    last_saved_at: datetime

    class Config:
        from_attributes = True


class PublicSubmissionResponse(SubmissionResponse):
    """Submission returned to the respondent, with the token needed to continue an anonymous draft."""
    resume_token: Optional[str] = None


class FilterCondition(BaseModel):
    """A comparison against one answer."""
    field_id: str
    operator: Literal[
        "equals",
        "not_equals",
        "contains",
        "not_contains",
        "starts_with",
        "ends_with",
        "greater_than",
        "greater_than_or_equal",
        "less_than",
        "less_than_or_equal",
        "in",
        "not_in",
        "is_null",
        "is_not_null",
        "between",
    ]
    value: Optional[Any] = None
    value2: Optional[Any] = None


class FilterGroup(BaseModel):
    """Conditions joined by AND or OR."""
    logic: Literal["AND", "OR"] = "AND"
    conditions: List[FilterCondition] = []


class SortConfig(BaseModel):
    """Sort on an answer or a submission column."""
    field_id: str
    direction: Literal["asc", "desc"] = "asc"


class SubmissionFilterQuery(BaseModel):
    """Schema for querying a form's submissions."""
    status: Optional[SubmissionStatus] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    filters: List[FilterGroup] = []
    sort: List[SortConfig] = []
    limit: int = Field(50, ge=1, le=100)
    offset: int = Field(0, ge=0)


class SubmissionListResponse(BaseModel):
    """Schema for a page of submissions."""
    items: List[SubmissionResponse]
    total: int
    limit: int
    offset: int


class BulkDeleteSubmissions(BaseModel):
    """Schema for deleting several submissions at once."""
    submission_ids: List[int] = Field(..., min_length=1)


class BulkStatusUpdate(BaseModel):
    """Schema for moving several submissions to one status."""
    submission_ids: List[int] = Field(..., min_length=1)
    status: SubmissionStatus


class SubmissionVersionResponse(BaseModel):
    """Schema for one entry of a submission's edit history."""
    id: int
    submission_id: int
    version: int
    data: Dict[str, Any]
    status: SubmissionStatus
    changed_by_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class SubmissionExportQuery(SubmissionFilterQuery):
    """Schema for exporting the submissions that match a query."""
    format: Literal["csv", "json", "docx", "xlsx"] = "csv"
    fields: Optional[List[str]] = None
    include_metadata: bool = False
    limit: int = Field(10000, ge=1, le=10000)
