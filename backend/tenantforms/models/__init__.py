"""SQLAlchemy models for the tenantforms backend."""

from tenantforms.models.user import User, MemberRole, PasswordResetToken
from tenantforms.models.company import Company, CompanyStatus
from tenantforms.models.form import Form, FormStatus, FormSubmission, SubmissionStatus, SubmissionVersion
from tenantforms.models.invitation import Invitation, InvitationStatus
from tenantforms.models.file import StoredFile
from tenantforms.models.audit import AuditEvent

__all__ = [
    "User",
    "MemberRole",
    "PasswordResetToken",
    "Company",
    "CompanyStatus",
    "Form",
    "FormStatus",
    "FormSubmission",
    "SubmissionStatus",
    "SubmissionVersion",
    "Invitation",
    "InvitationStatus",
    "StoredFile",
    "AuditEvent",
]
