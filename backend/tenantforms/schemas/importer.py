"""Spreadsheet import Pydantic schemas."""

from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, Field

from tenantforms.schemas.form import FormResponse


class ParsedSheet(BaseModel):
    """Header row and data rows of an uploaded CSV or Excel file."""
    columns: List[str]
    rows: List[Dict[str, Any]]
    row_count: int
    preview: List[Dict[str, Any]]


class DetectedField(BaseModel):
    """Field type guessed from a column's name and values."""
    name: str
    label: str
    type: Literal["text", "textarea", "number", "email", "date", "checkbox", "dropdown"]
    required: bool = False
    options: Optional[List[str]] = None
    confidence: float
    reason: str


class ImportAnalysis(BaseModel):
    """What a new form built from the file would look like."""
    columns: List[str]
    row_count: int
    preview: List[Dict[str, Any]]
    detected_fields: List[DetectedField]
    warnings: List[str]
    suggested_form_name: str


class MappingSuggestion(BaseModel):
    column: str
    field_id: str
    field_label: str
    confidence: Literal["high", "medium", "low"]


class ImportPreview(BaseModel):
    """Automatic column to field mapping for an existing form."""
    columns: List[str]
    row_count: int
    preview: List[Dict[str, Any]]
    mapping: Dict[str, str]
    suggestions: List[MappingSuggestion]
    unmapped_columns: List[str]
    unmapped_required_fields: List[str]


class RowError(BaseModel):
    """A problem with one cell. ``row`` is 1-based, not counting the header."""
    row: int
    field: str
    field_id: str
    value: Optional[Any] = None
    error: str
    suggestion: Optional[str] = None


class ImportValidation(BaseModel):
    valid_row_count: int
    invalid_row_count: int
    errors: List[RowError]
    warnings: List[str]
    skipped_fields: List[str]


class ImportResult(BaseModel):
    imported: int
    failed: int
    errors: List[RowError]


class ImportedField(BaseModel):
    """A field of a form created from a file, keyed by its column."""
    column: str
    label: str = Field(..., min_length=1)
    type: Literal["text", "textarea", "number", "email", "date", "checkbox", "dropdown", "radio"]
    required: bool = False
    options: Optional[List[str]] = None
    description: Optional[str] = None


class FormFromImport(BaseModel):
    """Schema for building and publishing a form from an uploaded file."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    fields: List[ImportedField] = Field(..., min_length=1)
    import_data: bool = True


class FormImportResponse(BaseModel):
    form: FormResponse
    result: Optional[ImportResult] = None
