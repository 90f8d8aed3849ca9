"""Pydantic schemas for request/response validation."""

from tenantforms.schemas.user import (
    UserCreate,
    UserResponse,
    UserLogin,
    Token,
    TokenData,
    PasswordChange,
    ProfileUpdate,
)
from tenantforms.schemas.company import (
    CompanyBasicInfo,
    CompanyAddress,
    CompanyBranding,
    CompanyDocuments,
    CompanyUpdate,
    CompanyResponse,
    CompanyListResponse,
    OnboardingProgress,
    RejectCompany,
    SuspendCompany,
    BulkCompanyAction,
    BulkActionResponse,
)
from tenantforms.schemas.form import (
    FormField,
    FieldOption,
    FieldLayout,
    ValidationRule,
    FormStep,
    ConditionalCondition,
    ConditionalRule,
    FormSettings,
    FormTheme,
    FormAccessControl,
    FormMetadata,
    FormDefinition,
    FormCreate,
    FormUpdate,
    FormClone,
    FormResponse,
    FormAvailability,
)
from tenantforms.schemas.submission import (
    SubmissionCreate,
    SubmissionUpdate,
    SubmissionResponse,
    SubmissionFilterQuery,
    SubmissionListResponse,
)
from tenantforms.schemas.team import (
    InvitationCreate,
    InvitationAccept,
    InvitationResponse,
    InvitationPreview,
    RoleUpdate,
    MemberSuspend,
    TeamMember,
    TeamListResponse,
)
from tenantforms.schemas.audit import (
    AuditEventResponse,
    AuditLogResponse,
)

__all__ = [
    # User
    "UserCreate",
    "UserResponse",
    "UserLogin",
    "Token",
    "TokenData",
    "PasswordChange",
    "ProfileUpdate",
    # Company
    "CompanyBasicInfo",
    "CompanyAddress",
    "CompanyBranding",
    "CompanyDocuments",
    "CompanyUpdate",
    "CompanyResponse",
    "CompanyListResponse",
    "OnboardingProgress",
    "RejectCompany",
    "SuspendCompany",
    "BulkCompanyAction",
    "BulkActionResponse",
    # Form
    "FormField",
    "FieldOption",
    "FieldLayout",
    "ValidationRule",
    "FormStep",
    "ConditionalCondition",
    "ConditionalRule",
    "FormSettings",
    "FormTheme",
    "FormAccessControl",
    "FormMetadata",
    "FormDefinition",
    "FormCreate",
    "FormUpdate",
    "FormClone",
    "FormResponse",
    "FormAvailability",
    # Submission
    "SubmissionCreate",
    "SubmissionUpdate",
    "SubmissionResponse",
    "SubmissionFilterQuery",
    "SubmissionListResponse",
    # Team
    "InvitationCreate",
    "InvitationAccept",
    "InvitationResponse",
    "InvitationPreview",
    "RoleUpdate",
    "MemberSuspend",
    "TeamMember",
    "TeamListResponse",
    # Audit
    "AuditEventResponse",
    "AuditLogResponse",
]
