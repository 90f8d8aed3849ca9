"""Service layer for business logic."""

from tenantforms.services.auth import AuthService
from tenantforms.services.audit import AuditService
from tenantforms.services.onboarding import OnboardingService
from tenantforms.services.company import CompanyService
from tenantforms.services.team import TeamService
from tenantforms.services.form import FormService
from tenantforms.services.submission import SubmissionService
from tenantforms.services.analytics import AnalyticsService
from tenantforms.services.files import FileService
from tenantforms.services.email import EmailService, email_service

__all__ = [
    "AuthService",
    "AuditService",
    "OnboardingService",
    "CompanyService",
    "TeamService",
    "FormService",
    "SubmissionService",
    "AnalyticsService",
    "FileService",
    "EmailService",
    "email_service",
]
