"""Company onboarding wizard router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tenantforms.database import get_db
from tenantforms.models.company import Company
from tenantforms.models.user import User
from tenantforms.schemas.company import (
    CompanyBasicInfo,
    CompanyAddress,
    CompanyBranding,
    CompanyDocuments,
    CompanyResponse,
    OnboardingProgress,
)
from tenantforms.services.auth import get_current_active_user
from tenantforms.services.onboarding import (
    OnboardingService,
    can_edit_company,
    resolve_onboarding_redirect,
    resolve_step_access,
)

router = APIRouter()


def _progress(company: Company) -> OnboardingProgress:
    return OnboardingProgress(
        company=CompanyResponse.model_validate(company),
        current_step=company.current_step,
        completed_steps=company.completed_steps or [],
        can_edit=can_edit_company(company),
        redirect_to=resolve_onboarding_redirect(company.status, company.current_step),
    )


@router.get("/progress", response_model=OnboardingProgress)
async def get_progress(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get the current user's application and where the wizard should go next."""
    return _progress(OnboardingService.get_progress(db, current_user))


@router.get("/steps/{step}/access")
async def check_step_access(
    step: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Whether ``step`` may be shown; otherwise the path to redirect to."""
    company = OnboardingService.get_progress(db, current_user)
    redirect_to = resolve_step_access(company, step)
    return {"allowed": redirect_to is None, "redirect_to": redirect_to}


@router.put("/steps/2", response_model=OnboardingProgress)
async def save_basic_info(
    data: CompanyBasicInfo,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return _progress(OnboardingService.save_basic_info(db, current_user, data))


@router.put("/steps/3", response_model=OnboardingProgress)
async def save_address(
    data: CompanyAddress,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return _progress(OnboardingService.save_address(db, current_user, data))


@router.put("/steps/4", response_model=OnboardingProgress)
async def save_branding(
    data: CompanyBranding,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return _progress(OnboardingService.save_branding(db, current_user, data))


@router.put("/steps/5", response_model=OnboardingProgress)
async def save_documents(
    data: CompanyDocuments,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return _progress(OnboardingService.save_documents(db, current_user, data))


@router.post("/submit", response_model=OnboardingProgress)
async def submit_application(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Review step (6): send the application to the super admins."""
    return _progress(OnboardingService.submit(db, current_user))


@router.post("/resubmit", response_model=OnboardingProgress)
async def resubmit_application(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return _progress(OnboardingService.resubmit(db, current_user))
