"""Company form management router."""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from tenantforms.database import get_db
from tenantforms.models.form import FormStatus, FormSubmission
from tenantforms.schemas.form import (
    FIELD_TYPES,
    FormAvailability,
    FormClone,
    FormCreate,
    FormField,
    FormResponse,
    FormUpdate,
    PublishValidation,
)
from tenantforms.schemas.submission import SubmissionExportQuery
from tenantforms.services import form_schema
from tenantforms.services.access import UserContext, editor_guard, member_guard, owner_guard
from tenantforms.services.analytics import AnalyticsService
from tenantforms.services.export import export_submissions
from tenantforms.services.form import FormService
from tenantforms.services.submission import SubmissionService
from tenantforms.services.form_validation import validate_form_for_publishing

router = APIRouter()


@router.get("", response_model=List[FormResponse])
async def list_forms(
    org_id: int,
    status_filter: Optional[FormStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    forms = FormService.list_forms(db, org_id, status_filter)
    return [form_schema.to_response(form) for form in forms]


@router.post("", response_model=FormResponse)
async def create_form(
    org_id: int,
    data: FormCreate,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    """Create a draft form. The company must be active."""
    form = FormService.create_form(db, org_id, ctx, data)
    return form_schema.to_response(form)


@router.get("/field-types/{field_type}", response_model=FormField)
async def new_field(
    org_id: int,
    field_type: str,
    order: int = Query(0, ge=0),
    ctx: UserContext = Depends(editor_guard)
):
    """A new field of ``field_type`` with its default properties."""
    if field_type not in FIELD_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown field type: {field_type}"
        )
    return form_schema.create_default_field(field_type, order)


@router.get("/{form_id}", response_model=FormResponse)
async def get_form(
    org_id: int,
    form_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    return form_schema.to_response(FormService.get_form(db, org_id, form_id))


@router.put("/{form_id}", response_model=FormResponse)
async def update_form(
    org_id: int,
    form_id: int,
    data: FormUpdate,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    form = FormService.update_form(db, org_id, form_id, ctx, data)
    return form_schema.to_response(form)


@router.get("/{form_id}/publish-check", response_model=PublishValidation)
async def check_publish(
    org_id: int,
    form_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    is_valid, errors = validate_form_for_publishing(FormService.get_form(db, org_id, form_id))
    return PublishValidation(is_valid=is_valid, errors=errors)


@router.post("/{form_id}/publish", response_model=FormResponse)
async def publish_form(
    org_id: int,
    form_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    """Publish a form so it accepts submissions."""
    form = FormService.publish_form(db, org_id, form_id, ctx)
    return form_schema.to_response(form)


@router.post("/{form_id}/archive", response_model=FormResponse)
async def archive_form(
    org_id: int,
    form_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    form = FormService.archive_form(db, org_id, form_id, ctx)
    return form_schema.to_response(form)


@router.post("/{form_id}/clone", response_model=FormResponse)
async def clone_form(
    org_id: int,
    form_id: int,
    data: FormClone,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    form = FormService.clone_form(db, org_id, form_id, ctx, data.name)
    return form_schema.to_response(form)


@router.delete("/{form_id}")
async def delete_form(
    org_id: int,
    form_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    """Delete a form and all of its submissions."""
    FormService.delete_form(db, org_id, form_id, ctx)
    return {"message": "Form deleted successfully"}


@router.post("/{form_id}/preview")
async def preview_form(
    org_id: int,
    form_id: int,
    answers: Dict[str, Any] = Body(default={}),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    """Render the form with conditional logic applied to ``answers``."""
    return FormService.preview_form(db, org_id, form_id, answers)


@router.get("/{form_id}/availability", response_model=FormAvailability)
async def get_availability(
    org_id: int,
    form_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    form = FormService.get_form(db, org_id, form_id)
    return FormService.get_availability(db, form)


@router.get("/{form_id}/analytics")
async def get_form_analytics(
    org_id: int,
    form_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    form = FormService.get_form(db, org_id, form_id)
    return AnalyticsService.get_form_analytics(db, form)


@router.get("/{form_id}/export")
async def export_form_submissions(
    org_id: int,
    form_id: int,
    export_format: Literal["csv", "json", "docx", "xlsx"] = Query("csv", alias="format"),
    fields: Optional[List[str]] = Query(None),
    include_metadata: bool = False,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    """Download all submissions as CSV, JSON, DOCX or Excel."""
    form = FormService.get_form(db, org_id, form_id)
    submissions = db.query(FormSubmission).filter(
        FormSubmission.form_id == form.id
    ).order_by(FormSubmission.id.asc()).all()

    content, media_type, disposition = export_submissions(
        form, submissions, export_format, field_ids=fields, include_metadata=include_metadata
    )
    return Response(content=content, media_type=media_type, headers={"Content-Disposition": disposition})


@router.post("/{form_id}/export")
async def export_filtered_submissions(
    org_id: int,
    form_id: int,
    query: SubmissionExportQuery,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    """Download the submissions matching a filter query."""
    form = FormService.get_form(db, org_id, form_id)
    submissions = SubmissionService.list_submissions(db, form, query)["items"]

    content, media_type, disposition = export_submissions(
        form, submissions, query.format, field_ids=query.fields, include_metadata=query.include_metadata
    )
    return Response(content=content, media_type=media_type, headers={"Content-Disposition": disposition})
