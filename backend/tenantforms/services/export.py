"""Submission export to CSV, JSON, DOCX and Excel."""

import csv
import io
import json
import logging
import re
import unicodedata
from datetime import datetime, date
from typing import Optional, List, Dict, Any, Tuple
from urllib.parse import quote

from docx import Document
from docx.shared import Pt, RGBColor
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from tenantforms.models.form import Form, FormSubmission
from tenantforms.schemas.form import FormField
from tenantforms.services import form_schema

logger = logging.getLogger(__name__)

MISSING = "—"

BASE_COLUMNS = ["ID", "Status", "Submitted At", "Submitted By"]
METADATA_COLUMNS = ["Started At", "Last Saved"]

EXPORT_FORMATS = {
    "csv": "text/csv",
    "json": "application/json",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def sanitize_column_name(name: str) -> str:
    """Strip punctuation, join words with underscores and cap at 31 characters."""
    name = re.sub(r"[^\w\s]", "", name or "")
    name = re.sub(r"\s+", "_", name)
    return name[:31]


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def format_field_value(value: Any, field_type: str) -> str:
    """Human-readable value for exports."""
    if value is None:
        return MISSING

    if field_type == "date":
        parsed = _parse_datetime(value)
        return parsed.strftime("%Y-%m-%d") if parsed else str(value)
    if field_type == "datetime":
        parsed = _parse_datetime(value)
        return parsed.strftime("%Y-%m-%d %H:%M") if parsed else str(value)
    if field_type in ("multi_select", "checkbox") and isinstance(value, list):
        return ", ".join(str(item) for item in value)
    if field_type in ("file_upload", "image_upload"):
        return f"{len(value)} file(s)" if isinstance(value, list) else "0 files"
    if field_type == "rating":
        return f"{value} ⭐"
    if field_type == "currency":
        try:
            return f"${float(value):.2f}"
        except (TypeError, ValueError):
            return str(value)
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    if isinstance(value, dict):
        return ", ".join(f"{k}: {v}" for k, v in value.items())
    return str(value)


def _export_fields(form: Form, field_ids: Optional[List[str]] = None) -> List[FormField]:
    """Input fields in form order, limited to ``field_ids`` when given."""
    fields = [field for field in form_schema.from_db(form).fields if field.is_input]
    if field_ids:
        wanted = set(field_ids)
        fields = [field for field in fields if field.id in wanted]
    return fields


def _column_names(fields: List[FormField]) -> List[str]:
    """One column per field; repeated labels get a numeric suffix."""
    names: List[str] = []
    for field in fields:
        name = sanitize_column_name(field.label) or sanitize_column_name(field.id)
        candidate, index = name, 2
        while candidate in names or candidate in BASE_COLUMNS or candidate in METADATA_COLUMNS:
            candidate = f"{name[:28]}_{index}"
            index += 1
        names.append(candidate)
    return names


def _header(columns: List[str], include_metadata: bool) -> List[str]:
    return BASE_COLUMNS + columns + (METADATA_COLUMNS if include_metadata else [])


def submission_to_row(
    submission: FormSubmission,
    fields: List[FormField],
    columns: Optional[List[str]] = None,
    include_metadata: bool = False
) -> Dict[str, str]:
    columns = columns or _column_names(fields)
    row = {
        "ID": str(submission.id),
        "Status": str(submission.status),
        "Submitted At": submission.submitted_at.isoformat() if submission.submitted_at else MISSING,
        "Submitted By": submission.submitted_by_email or (
            str(submission.submitted_by_id) if submission.submitted_by_id else "Anonymous"
        ),
    }
    data = submission.data or {}
    for column, field in zip(columns, fields):
        row[column] = format_field_value(data.get(field.id), field.type)
    if include_metadata:
        row["Started At"] = submission.started_at.isoformat() if submission.started_at else MISSING
        row["Last Saved"] = submission.last_saved_at.isoformat() if submission.last_saved_at else MISSING
    return row


def export_csv(
    form: Form,
    submissions: List[FormSubmission],
    field_ids: Optional[List[str]] = None,
    include_metadata: bool = False
) -> str:
    fields = _export_fields(form, field_ids)
    columns = _column_names(fields)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=_header(columns, include_metadata))
    writer.writeheader()
    for submission in submissions:
        writer.writerow(submission_to_row(submission, fields, columns, include_metadata))
    return buffer.getvalue()


def export_xlsx(
    form: Form,
    submissions: List[FormSubmission],
    field_ids: Optional[List[str]] = None,
    include_metadata: bool = False
) -> bytes:
    """A single "Submissions" sheet with a bold, frozen header row."""
    fields = _export_fields(form, field_ids)
    columns = _column_names(fields)
    header = _header(columns, include_metadata)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Submissions"
    sheet.append(header)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
        cell.fill = PatternFill("solid", fgColor="E2E8F0")
    sheet.freeze_panes = "A2"

    for submission in submissions:
        row = submission_to_row(submission, fields, columns, include_metadata)
        sheet.append([row[column] for column in header])

    for index, column in enumerate(header, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = max(len(column), 15)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_json(
    form: Form,
    submissions: List[FormSubmission],
    field_ids: Optional[List[str]] = None,
    include_metadata: bool = False
) -> str:
    """Raw answers keyed by field id, with the field definitions."""
    fields = _export_fields(form, field_ids)
    keep = {field.id for field in fields}

    def entry(s: FormSubmission) -> Dict[str, Any]:
        item = {
            "id": s.id,
            "status": str(s.status),
            "form_version": s.form_version,
            "submitted_at": s.submitted_at.isoformat() if s.submitted_at else None,
            "submitted_by": s.submitted_by_email,
            "data": {k: v for k, v in (s.data or {}).items() if not field_ids or k in keep},
        }
        if include_metadata:
            item["started_at"] = s.started_at.isoformat() if s.started_at else None
            item["last_saved_at"] = s.last_saved_at.isoformat() if s.last_saved_at else None
        return item

    payload = {
        "form": {
            "id": form.id,
            "name": form.name,
            "version": form.version,
            "exported_at": datetime.utcnow().isoformat(),
        },
        "fields": [
            {"id": field.id, "label": field.label, "type": field.type}
            for field in fields
        ],
        "submissions": [entry(s) for s in submissions],
    }
    return json.dumps(payload, indent=2, default=str)


def export_docx(
    form: Form,
    submissions: List[FormSubmission],
    field_ids: Optional[List[str]] = None,
    include_metadata: bool = False
) -> bytes:
    """One heading per submission followed by a two-column answer table."""
    fields = _export_fields(form, field_ids)
    doc = Document()

    title = doc.add_heading(form.name, level=0)
    for run in title.runs:
        run.font.color.rgb = RGBColor(0x1E, 0x29, 0x3B)
    summary = doc.add_paragraph(
        f"{len(submissions)} submission(s), exported {datetime.utcnow().strftime('%Y-%m-%d %H:%M')} UTC"
    )
    summary.runs[0].font.size = Pt(9)

    meta_keys = BASE_COLUMNS[1:] + (METADATA_COLUMNS if include_metadata else [])
    for submission in submissions:
        doc.add_heading(f"Submission #{submission.id}", level=2)
        meta = submission_to_row(submission, [], [], include_metadata)
        table = doc.add_table(rows=0, cols=2)
        table.style = "Table Grid"

        rows: List[Tuple[str, str]] = [(key, meta[key]) for key in meta_keys]
        data = submission.data or {}
        rows += [
            (field.label or field.id, format_field_value(data.get(field.id), field.type))
            for field in fields
        ]
        for label, value in rows:
            cells = table.add_row().cells
            cells[0].text = label
            cells[1].text = value
            for run in cells[0].paragraphs[0].runs:
                run.bold = True

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def ascii_fold(text: str) -> str:
    """Drop accents and any character outside ASCII."""
    return unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")


def content_disposition(filename: str, ascii_filename: str) -> str:
    """Attachment header with a plain ASCII name and the RFC 5987 UTF-8 name."""
    return f"attachment; filename=\"{ascii_filename}\"; filename*=UTF-8''{quote(filename, safe='')}"


def export_submissions(
    form: Form,
    submissions: List[FormSubmission],
    export_format: str,
    field_ids: Optional[List[str]] = None,
    include_metadata: bool = False
) -> Tuple[bytes, str, str]:
    """Return ``(content, media_type, content_disposition)`` for ``export_format``."""
    options = {"field_ids": field_ids, "include_metadata": include_metadata}
    if export_format == "csv":
        content = export_csv(form, submissions, **options).encode("utf-8")
    elif export_format == "json":
        content = export_json(form, submissions, **options).encode("utf-8")
    elif export_format == "docx":
        content = export_docx(form, submissions, **options)
    elif export_format == "xlsx":
        content = export_xlsx(form, submissions, **options)
    else:
        raise ValueError(f"Unsupported export format: {export_format}")

    fallback = f"form_{form.id}"
    base_name = sanitize_column_name(form.name) or fallback
    ascii_name = sanitize_column_name(ascii_fold(form.name)).strip("_") or fallback
    disposition = content_disposition(
        f"{base_name}_submissions.{export_format}",
        f"{ascii_name}_submissions.{export_format}",
    )

    logger.info("Exported %s submissions of form %s as %s", len(submissions), form.id, export_format)
    return content, EXPORT_FORMATS[export_format], disposition
