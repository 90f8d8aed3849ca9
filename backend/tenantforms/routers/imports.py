"""Spreadsheet import router.

Files are sent as multipart uploads; column mappings and new form
definitions travel next to them as JSON form fields.
"""

from typing import Dict

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from tenantforms.database import get_db
from tenantforms.schemas.importer import (
    FormFromImport,
    FormImportResponse,
    ImportAnalysis,
    ImportPreview,
    ImportResult,
    ImportValidation,
)
from tenantforms.services import form_schema
from tenantforms.services.access import UserContext, editor_guard
from tenantforms.services.export import content_disposition
from tenantforms.services.form import FormService
from tenantforms.services.importer import ImportService

router = APIRouter()

_mapping_adapter = TypeAdapter(Dict[str, str])


def _parse_mapping(raw: str) -> Dict[str, str]:
    try:
        return _mapping_adapter.validate_json(raw)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


@router.post("/imports/analyze", response_model=ImportAnalysis)
async def analyze_file(
    org_id: int,
    file: UploadFile = File(...),
    ctx: UserContext = Depends(editor_guard)
):
    """Suggest form fields for the columns of an uploaded file."""
    sheet = await ImportService.read_sheet(file)
    return ImportService.analyze(file.filename, sheet)


@router.post("/imports/forms", response_model=FormImportResponse, status_code=status.HTTP_201_CREATED)
async def create_form_from_file(
    org_id: int,
    file: UploadFile = File(...),
    definition: str = Form(...),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    """Create and publish a form from a file, importing its rows unless ``import_data`` is false."""
    try:
        data = FormFromImport.model_validate_json(definition)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    sheet = await ImportService.read_sheet(file)
    form, result = ImportService.create_form_from_import(db, org_id, ctx, sheet, data)
    return FormImportResponse(form=form_schema.to_response(form), result=result)


@router.post("/forms/{form_id}/import/preview", response_model=ImportPreview)
async def preview_import(
    org_id: int,
    form_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    """Suggest a column to field mapping for an existing form."""
    form = FormService.get_form(db, org_id, form_id)
    sheet = await ImportService.read_sheet(file)
    return ImportService.preview(form, sheet)


@router.post("/forms/{form_id}/import/validate", response_model=ImportValidation)
async def validate_import(
    org_id: int,
    form_id: int,
    file: UploadFile = File(...),
    mapping: str = Form(...),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    form = FormService.get_form(db, org_id, form_id)
    column_mapping = _parse_mapping(mapping)
    sheet = await ImportService.read_sheet(file)
    return ImportService.validate(form, sheet, column_mapping)


@router.post("/forms/{form_id}/import/errors")
async def download_import_errors(
    org_id: int,
    form_id: int,
    file: UploadFile = File(...),
    mapping: str = Form(...),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    """Download every row error of a file as CSV."""
    form = FormService.get_form(db, org_id, form_id)
    column_mapping = _parse_mapping(mapping)
    sheet = await ImportService.read_sheet(file)
    report = ImportService.error_report(form, sheet, column_mapping)

    filename = f"form_{form.id}_import_errors.csv"
    return Response(
        content=report,
        media_type="text/csv",
        headers={"Content-Disposition": content_disposition(filename, filename)},
    )


@router.post("/forms/{form_id}/import", response_model=ImportResult)
async def import_submissions(
    org_id: int,
    form_id: int,
    file: UploadFile = File(...),
    mapping: str = Form(...),
    skip_invalid: bool = Form(True),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(editor_guard)
):
    """Import the rows of a file as completed submissions."""
    form = FormService.get_form(db, org_id, form_id)
    column_mapping = _parse_mapping(mapping)
    sheet = await ImportService.read_sheet(file)
    return ImportService.import_rows(db, form, ctx, sheet, column_mapping, skip_invalid)
