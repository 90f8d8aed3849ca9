"""Company-side submission router, nested under a form."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from tenantforms.database import get_db
from tenantforms.models.form import FormSubmission, SubmissionStatus
from tenantforms.schemas.submission import (
    BulkDeleteSubmissions,
    BulkStatusUpdate,
    SubmissionFilterQuery,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionUpdate,
    SubmissionVersionResponse,
)
from tenantforms.services.access import UserContext, editor_guard, member_guard, owner_guard
from tenantforms.services.form import FormService
from tenantforms.services.submission import SubmissionService

router = APIRouter()


def _get_form_submission(
    db: Session,
    org_id: int,
    form_id: int,
    submission_id: int,
    ctx: UserContext,
    operation: str = "read"
) -> FormSubmission:
    FormService.get_form(db, org_id, form_id)
    submission = SubmissionService.get_submission(db, submission_id, ctx, operation)
    if submission.form_id != form_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Submission not found"
        )
    return submission


@router.get("", response_model=SubmissionListResponse)
async def list_submissions(
    org_id: int,
    form_id: int,
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    form = FormService.get_form(db, org_id, form_id)
    query = SubmissionFilterQuery(status=status_filter, limit=limit, offset=offset)
    return SubmissionService.list_submissions(db, form, query)


@router.post("/query", response_model=SubmissionListResponse)
async def query_submissions(
    org_id: int,
    form_id: int,
    query: SubmissionFilterQuery,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    """Filter by status, date range and answers, with sorting."""
    form = FormService.get_form(db, org_id, form_id)
    return SubmissionService.list_submissions(db, form, query)


@router.post("/bulk-delete")
async def bulk_delete_submissions(
    org_id: int,
    form_id: int,
    data: BulkDeleteSubmissions,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    form = FormService.get_form(db, org_id, form_id)
    deleted = SubmissionService.bulk_delete(db, form, data.submission_ids, ctx)
    return {"deleted": deleted}


@router.post("/bulk-status")
async def bulk_update_status(
    org_id: int,
    form_id: int,
    data: BulkStatusUpdate,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    """Mark several submissions as draft or completed."""
    form = FormService.get_form(db, org_id, form_id)
    updated = SubmissionService.bulk_update_status(db, form, data.submission_ids, data.status, ctx)
    return {"updated": updated}


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    org_id: int,
    form_id: int,
    submission_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    return _get_form_submission(db, org_id, form_id, submission_id, ctx)


@router.put("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    org_id: int,
    form_id: int,
    submission_id: int,
    data: SubmissionUpdate,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    """Merge new answers into a submission."""
    _get_form_submission(db, org_id, form_id, submission_id, ctx, "write")
    return SubmissionService.update_submission(db, submission_id, ctx, data)


@router.delete("/{submission_id}")
async def delete_submission(
    org_id: int,
    form_id: int,
    submission_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    _get_form_submission(db, org_id, form_id, submission_id, ctx, "delete")
    SubmissionService.delete_submission(db, submission_id, ctx)
    return {"message": "Submission deleted successfully"}


@router.get("/{submission_id}/versions", response_model=List[SubmissionVersionResponse])
async def list_submission_versions(
    org_id: int,
    form_id: int,
    submission_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    """Earlier answers of a submission, newest first."""
    submission = _get_form_submission(db, org_id, form_id, submission_id, ctx)
    return SubmissionService.list_versions(db, submission)


@router.get("/{submission_id}/versions/{version}", response_model=SubmissionVersionResponse)
async def get_submission_version(
    org_id: int,
    form_id: int,
    submission_id: int,
    version: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    submission = _get_form_submission(db, org_id, form_id, submission_id, ctx)
    return SubmissionService.get_version(db, submission, version)


@router.post("/{submission_id}/versions/{version}/restore", response_model=SubmissionResponse)
async def restore_submission_version(
    org_id: int,
    form_id: int,
    submission_id: int,
    version: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    _get_form_submission(db, org_id, form_id, submission_id, ctx, "write")
    return SubmissionService.restore_version(db, submission_id, version, ctx)
