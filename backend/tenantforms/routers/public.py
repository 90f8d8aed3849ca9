"""Public form router for respondents."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from tenantforms.database import get_db
from tenantforms.schemas.submission import PublicSubmissionResponse, SubmissionCreate, SubmissionUpdate
from tenantforms.services.access import UserContext, get_current_user_context
from tenantforms.services.submission import SubmissionService

router = APIRouter()


@router.get("/forms/{form_id}")
async def get_public_form(
    form_id: int,
    db: Session = Depends(get_db),
    ctx: Optional[UserContext] = Depends(get_current_user_context)
):
    """Render a published form and report whether it accepts submissions."""
    return SubmissionService.render_public_form(db, form_id, ctx)


@router.post("/forms/{form_id}/submissions", response_model=PublicSubmissionResponse)
async def create_submission(
    form_id: int,
    data: SubmissionCreate,
    request: Request,
    db: Session = Depends(get_db),
    ctx: Optional[UserContext] = Depends(get_current_user_context)
):
    """Start a draft or complete a submission."""
    return SubmissionService.create_submission(
        db,
        form_id,
        ctx,
        data,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.put("/forms/{form_id}/submissions/{submission_id}", response_model=PublicSubmissionResponse)
async def continue_submission(
    form_id: int,
    submission_id: int,
    data: SubmissionUpdate,
    db: Session = Depends(get_db),
    ctx: Optional[UserContext] = Depends(get_current_user_context)
):
    """Save more answers on a draft, optionally completing it."""
    return SubmissionService.continue_submission(db, form_id, submission_id, ctx, data)
