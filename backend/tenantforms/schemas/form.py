"""Form definition Pydantic schemas.

The definition parts (fields, steps, conditional logic, settings, theme,
access control and metadata) are stored as JSON on the ``Form`` row. Unknown
keys on fields and options are kept so type-specific properties such as
``max_rating`` or ``currency_symbol`` survive a save/load cycle.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Literal

from pydantic import BaseModel, Field

from tenantforms.models.form import FormStatus


FIELD_TYPES = [
    "short_text",
    "long_text",
    "email",
    "phone",
    "url",
    "number",
    "currency",
    "date",
    "datetime",
    "date_range",
    "time",
    "dropdown",
    "radio",
    "checkbox",
    "multi_select",
    "file_upload",
    "image_upload",
    "signature",
    "rating",
    "scale",
    "matrix",
    "location",
    "address",
    "rich_text",
    "section_header",
    "divider",
]

# Types that only structure the form and never collect a value
LAYOUT_FIELD_TYPES = ["section_header", "divider"]

CHOICE_FIELD_TYPES = ["dropdown", "radio", "checkbox", "multi_select"]

NUMERIC_FIELD_TYPES = ["number", "currency", "rating", "scale"]

VALIDATION_RULE_TYPES = [
    "required",
    "min_length",
    "max_length",
    "min_value",
    "max_value",
    "regex",
    "email_format",
    "phone_format",
    "url_format",
    "custom",
]

CONDITIONAL_OPERATORS = [
    "equals",
    "not_equals",
    "contains",
    "not_contains",
    "greater_than",
    "less_than",
    "is_empty",
    "is_not_empty",
]


class ValidationRule(BaseModel):
    """A single validation rule attached to a field."""
    type: str
    value: Optional[Any] = None
    message: str = ""


class FieldOption(BaseModel):
    """Choice option for selection fields."""
    id: str
    label: str
    value: str
    color: Optional[str] = None
    icon: Optional[str] = None

    class Config:
        extra = "allow"


class FieldLayout(BaseModel):
    """Grid placement of a field."""
    width: Literal["full", "half", "third", "quarter", "auto"] = "full"
    columns: Optional[int] = None
    row: Optional[int] = None
    col: Optional[int] = None

    class Config:
        extra = "allow"


class FormField(BaseModel):
    """
    A field definition.

    Common keys are declared; type-specific keys (``options``, ``min``,
    ``max``, ``max_rating``, ``rows``, ``columns``...) are accepted as extras.
    """
    id: str
    type: str
    label: str = ""
    description: Optional[str] = None
    placeholder: Optional[str] = None
    required: bool = False
    validation: List[ValidationRule] = []
    layout: FieldLayout = Field(default_factory=FieldLayout)
    order: int = 0
    options: Optional[List[FieldOption]] = None

    class Config:
        extra = "allow"

    @property
    def is_input(self) -> bool:
        return self.type not in LAYOUT_FIELD_TYPES


class FormStep(BaseModel):
    """A page of a multi-step form, listing field ids in display order."""
    id: str
    title: str = ""
    description: Optional[str] = ""
    fields: List[str] = []
    order: int = 1

    class Config:
        extra = "allow"


class ConditionalCondition(BaseModel):
    """One comparison against another field's answer."""
    field_id: str
    operator: Literal[
        "equals",
        "not_equals",
        "contains",
        "not_contains",
        "greater_than",
        "less_than",
        "is_empty",
        "is_not_empty",
    ]
    value: Optional[Any] = None


class ConditionalRule(BaseModel):
    """Show, hide or require a target field when conditions hold."""
    id: str
    conditions: List[ConditionalCondition] = []
    logic_operator: Literal["AND", "OR"] = "AND"
    action: Literal["show", "hide", "require", "skip_to"]
    target_field_id: str
    skip_to_step_id: Optional[str] = None


class FormSettings(BaseModel):
    """Respondent-facing behaviour of a form."""
    is_public: bool = False
    allow_anonymous: bool = False
    require_login: bool = True
    allow_edit: bool = False
    allow_multiple_submissions: bool = False
    show_progress_bar: bool = True
    show_question_numbers: bool = True
    shuffle_questions: bool = False
    confirmation_message: str = "Thank you for your submission!"
    redirect_url: Optional[str] = None
    enable_notifications: bool = False
    notification_emails: List[str] = []
    enable_auto_save: bool = True
    auto_save_interval: int = 30
    collect_email: bool = True
    collect_ip_address: bool = False
    enable_recaptcha: bool = False


class FormTheme(BaseModel):
    """Visual theme of a form."""
    primary_color: str = "#1e293b"
    background_color: str = "#ffffff"
    font_family: str = "Inter"
    font_size: str = "16px"
    button_style: Literal["rounded", "square", "pill"] = "rounded"
    show_progress_bar: bool = True
    logo_url: Optional[str] = None


class FormAccessControl(BaseModel):
    """Who may open and submit a form, and until when."""
    visibility: Literal["public", "private", "team"] = "public"
    password: Optional[str] = None
    allowed_domains: Optional[List[str]] = None
    expires_at: Optional[datetime] = None
    max_submissions: Optional[int] = Field(None, ge=1)


class FormMetadata(BaseModel):
    """Derived counters kept alongside the definition."""
    total_fields: int = 0
    total_steps: int = 1
    estimated_time: int = 5
    response_count: int = 0
    last_submitted_at: Optional[datetime] = None


class FormDefinition(BaseModel):
    """The complete JSON side of a form, with defaults filled in."""
    fields: List[FormField] = []
    steps: List[FormStep] = []
    conditional_logic: List[ConditionalRule] = []
    settings: FormSettings = Field(default_factory=FormSettings)
    theme: FormTheme = Field(default_factory=FormTheme)
    access_control: FormAccessControl = Field(default_factory=FormAccessControl)
    metadata: FormMetadata = Field(default_factory=FormMetadata)


class FormCreate(BaseModel):
    """Schema for creating a form."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    fields: List[FormField] = []
    steps: Optional[List[FormStep]] = None
    conditional_logic: List[ConditionalRule] = []
    settings: Optional[FormSettings] = None
    theme: Optional[FormTheme] = None
    access_control: Optional[FormAccessControl] = None
    is_template: bool = False
    template_category: Optional[str] = None


class FormUpdate(BaseModel):
    """Schema for updating a form. Omitted parts are left untouched."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    fields: Optional[List[FormField]] = None
    steps: Optional[List[FormStep]] = None
    conditional_logic: Optional[List[ConditionalRule]] = None
    settings: Optional[FormSettings] = None
    theme: Optional[FormTheme] = None
    access_control: Optional[FormAccessControl] = None
    template_category: Optional[str] = None


class FormClone(BaseModel):
    """Schema for cloning a form."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class FormResponse(BaseModel):
    """Schema for form responses."""
    id: int
    company_id: int
    name: str
    description: Optional[str]
    status: FormStatus
    version: int
    is_template: bool
    template_category: Optional[str]
    fields: List[FormField]
    steps: List[FormStep]
    conditional_logic: List[ConditionalRule]
    settings: FormSettings
    theme: FormTheme
    access_control: FormAccessControl
    metadata: FormMetadata
    created_by_id: int
    updated_by_id: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]
    published_at: Optional[datetime]


class FormAvailability(BaseModel):
    """Whether a form currently accepts submissions."""
    can_accept: bool
    reason: Optional[str] = None
    expiry_status: Optional[Dict[str, Any]] = None


class PublishValidation(BaseModel):
    """Result of the publish checks."""
    is_valid: bool
    errors: List[str]
