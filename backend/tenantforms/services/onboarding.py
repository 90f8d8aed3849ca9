"""Onboarding service: the company registration wizard."""

import logging
from datetime import datetime
from typing import Optional, List

from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from pydantic import BaseModel

from tenantforms.constants import FIRST_DATA_STEP, LAST_STEP
from tenantforms.models.company import Company, CompanyStatus
from tenantforms.models.file import StoredFile
from tenantforms.models.user import User, MemberRole
from tenantforms.schemas.company import (
    CompanyBasicInfo,
    CompanyAddress,
    CompanyBranding,
    CompanyDocuments,
)
from tenantforms.services.audit import AuditService

logger = logging.getLogger(__name__)

PENDING_APPROVAL_PATH = "/onboarding/pending-approval"
DASHBOARD_PATH = "/dashboard"
SUSPENDED_PATH = "/suspended"

# Company columns each data step must fill before the application can be submitted
REQUIRED_STEP_FIELDS = {
    2: ["company_name", "industry", "size", "phone"],
    3: ["street", "city", "state", "country", "zip_code"],
    4: ["tax_id"],
    5: ["business_registration_file_id", "tax_document_file_id", "proof_of_address_file_id"],
}

EDITABLE_STATUSES = [CompanyStatus.DRAFT, CompanyStatus.REJECTED]


def step_path(step: int) -> str:
    return f"/onboarding/step-{step}"


def resolve_onboarding_redirect(company_status: Optional[str], current_step: Optional[int]) -> str:
    """Where the wizard should send a user with this status and step."""
    if company_status in (CompanyStatus.PENDING, CompanyStatus.REJECTED):
        return PENDING_APPROVAL_PATH
    if company_status == CompanyStatus.ACTIVE:
        return DASHBOARD_PATH
    if company_status == CompanyStatus.SUSPENDED:
        return SUSPENDED_PATH
    if current_step in (1, 2):
        return step_path(FIRST_DATA_STEP)
    if isinstance(current_step, int) and FIRST_DATA_STEP < current_step <= LAST_STEP:
        return step_path(current_step)
    return step_path(FIRST_DATA_STEP)


def can_edit_company(company: Company) -> bool:
    return company.status in EDITABLE_STATUSES


def resolve_step_access(company: Company, step: int) -> Optional[str]:
    """Return None when ``step`` may be shown, else the path to redirect to."""
    if (
        can_edit_company(company)
        and FIRST_DATA_STEP <= step <= LAST_STEP
        and step <= company.current_step
    ):
        return None
    return resolve_onboarding_redirect(company.status, company.current_step)


def is_step_complete(company: Company, step: int) -> bool:
    return all(getattr(company, column) for column in REQUIRED_STEP_FIELDS.get(step, []))


def missing_steps(company: Company) -> List[int]:
    return [step for step in REQUIRED_STEP_FIELDS if not is_step_complete(company, step)]


def is_onboarding_complete(company: Company) -> bool:
    return set(range(1, LAST_STEP + 1)).issubset(company.completed_steps or [])


def is_company_live(company: Company) -> bool:
    return company.status == CompanyStatus.ACTIVE


def needs_approval(company: Company) -> bool:
    return company.status == CompanyStatus.PENDING


class OnboardingService:
    """Service for onboarding wizard operations."""

    @staticmethod
    def get_company(db: Session, user: User) -> Optional[Company]:
        """The company the user belongs to, or the draft they are building."""
        if user.company_id:
            return db.get(Company, user.company_id)
        return db.query(Company).filter(
            Company.created_by_id == user.id
        ).order_by(Company.id.desc()).first()

    @staticmethod
    def create_progress(db: Session, user: User, commit: bool = True) -> Company:
        """Start the wizard: step 1 (the account) is done, step 2 is next."""
        company = Company(
            email=user.email,
            status=CompanyStatus.DRAFT,
            current_step=FIRST_DATA_STEP,
            completed_steps=[1],
            certification_file_ids=[],
            created_by_id=user.id,
        )
        db.add(company)
        if commit:
            db.commit()
            db.refresh(company)
        else:
            db.flush()
        logger.info("Created onboarding draft %s for user %s", company.id, user.id)
        return company

    @staticmethod
    def get_progress(db: Session, user: User) -> Company:
        company = OnboardingService.get_company(db, user)
        if company is None:
            company = OnboardingService.create_progress(db, user)
        return company

    @staticmethod
    def _ensure_own_files(db: Session, user: User, file_ids: List[Optional[int]]) -> None:
        for file_id in file_ids:
            if file_id is None:
                continue
            stored = db.get(StoredFile, file_id)
            if stored is None or stored.owner_id != user.id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"File {file_id} not found"
                )

    @staticmethod
    def save_step(db: Session, user: User, step: int, data: BaseModel) -> Company:
        """
        Save one data step (2-5).

        The company must be editable and the step already reached. Saving
        step N moves the wizard to N+1 with steps 1..N completed.
        """
        if step not in REQUIRED_STEP_FIELDS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid onboarding step: {step}"
            )

        company = OnboardingService.get_progress(db, user)

        if not can_edit_company(company):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Company application is {company.status.value} and can no longer be edited"
            )
        if step > company.current_step:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please complete the previous steps first"
            )

        values = data.model_dump()
        if step == 4:
            OnboardingService._ensure_own_files(db, user, [values.get("logo_file_id")])
        elif step == 5:
            OnboardingService._ensure_own_files(
                db,
                user,
                [
                    values["business_registration_file_id"],
                    values["tax_document_file_id"],
                    values["proof_of_address_file_id"],
                    *values["certification_file_ids"],
                ]
            )

        for key, value in values.items():
            setattr(company, key, value)

        company.current_step = step + 1
        company.completed_steps = list(range(1, step + 1))

        db.commit()
        db.refresh(company)
        logger.info("Company %s saved onboarding step %s", company.id, step)
        return company

    @staticmethod
    def save_basic_info(db: Session, user: User, data: CompanyBasicInfo) -> Company:
        return OnboardingService.save_step(db, user, 2, data)

    @staticmethod
    def save_address(db: Session, user: User, data: CompanyAddress) -> Company:
        return OnboardingService.save_step(db, user, 3, data)

    @staticmethod
    def save_branding(db: Session, user: User, data: CompanyBranding) -> Company:
        return OnboardingService.save_step(db, user, 4, data)

    @staticmethod
    def save_documents(db: Session, user: User, data: CompanyDocuments) -> Company:
        return OnboardingService.save_step(db, user, 5, data)

    @staticmethod
    def _require_sections(company: Company) -> None:
        if missing_steps(company):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please complete all steps before submitting"
            )

    @staticmethod
    def submit(db: Session, user: User) -> Company:
        """Submit a draft application for super admin review."""
        company = OnboardingService.get_company(db, user)
        if company is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Onboarding progress not found"
            )
        if company.status != CompanyStatus.DRAFT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot submit an application that is {company.status.value}"
            )
        OnboardingService._require_sections(company)

        company.status = CompanyStatus.PENDING
        company.completed_steps = list(range(1, LAST_STEP + 1))
        company.current_step = LAST_STEP
        company.submitted_at = datetime.utcnow()

        user.company_id = company.id
        user.role = MemberRole.OWNER

        AuditService.record(
            db,
            action="onboarding_submitted",
            resource_type="company",
            resource_id=company.id,
            user_id=user.id,
            company_id=company.id,
            details={"company_name": company.company_name},
        )
        db.commit()
        db.refresh(company)
        logger.info("Company %s submitted for approval", company.id)
        return company

    @staticmethod
    def resubmit(db: Session, user: User) -> Company:
        """Send a rejected application back to review."""
        company = OnboardingService.get_company(db, user)
        if company is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Onboarding progress not found"
            )
        if company.status != CompanyStatus.REJECTED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Can only resubmit rejected applications"
            )
        OnboardingService._require_sections(company)

        company.status = CompanyStatus.PENDING
        company.rejected_by_id = None
        company.rejected_at = None
        company.rejection_reason = None
        company.completed_steps = list(range(1, LAST_STEP + 1))
        company.current_step = LAST_STEP
        company.submitted_at = datetime.utcnow()

        AuditService.record(
            db,
            action="onboarding_resubmitted",
            resource_type="company",
            resource_id=company.id,
            user_id=user.id,
            company_id=company.id,
        )
        db.commit()
        db.refresh(company)
        logger.info("Company %s resubmitted for approval", company.id)
        return company
