"""Spreadsheet import for forms.

Uploaded ``.csv`` and ``.xlsx`` files are parsed into one dict per row keyed
by the header. A sheet can then be matched against an existing form's
fields, or used to build and publish a new form. Rows are checked per field
type before any submission is written, and only valid rows are imported.
"""

import csv
import io
import logging
import math
import os
import re
from datetime import datetime, date, time
from typing import Optional, List, Dict, Any, Tuple
from zipfile import BadZipFile

from fastapi import HTTPException, UploadFile, status
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.orm import Session

from tenantforms.config import get_settings
from tenantforms.models.form import Form, FormSubmission, SubmissionStatus
from tenantforms.schemas.form import NUMERIC_FIELD_TYPES, FormCreate, FormField, FormSettings
from tenantforms.schemas.importer import (
    DetectedField,
    FormFromImport,
    ImportAnalysis,
    ImportedField,
    ImportPreview,
    ImportResult,
    ImportValidation,
    MappingSuggestion,
    ParsedSheet,
    RowError,
)
from tenantforms.services import form_schema
from tenantforms.services.access import UserContext, ensure_data_scope
from tenantforms.services.audit import AuditService
from tenantforms.services.files import read_upload
from tenantforms.services.form import FormService
from tenantforms.services.form_validation import URL_PATTERN, can_accept_submissions
from tenantforms.services.submission import SubmissionService

logger = logging.getLogger(__name__)

IMPORT_EXTENSIONS = (".csv", ".xlsx")

# Field types whose answers cannot come from a spreadsheet cell
SKIPPED_FIELD_TYPES = ["file_upload", "image_upload", "signature"]

PREVIEW_ROWS = 5
MAX_REPORTED_ERRORS = 100

TRUE_VALUES = {"true", "yes", "1", "y", "on"}
FALSE_VALUES = {"false", "no", "0", "n", "off"}

DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M",
]

EMAIL_PATTERN = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$")

# Detected column type to form field type
FIELD_TYPE_FOR_COLUMN = {
    "text": "short_text",
    "textarea": "long_text",
    "number": "number",
    "email": "email",
    "date": "date",
    "checkbox": "checkbox",
    "dropdown": "dropdown",
    "radio": "radio",
}

ERROR_REPORT_HEADER = ["Row Number", "Field Name", "Field Type", "Value", "Error Message", "Suggestion"]


def _bad_request(detail: Any) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _cell(value: Any) -> Any:
    """Normalize a cell so rows stay JSON friendly."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == time(0) else value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    return value


def _read_csv(content: bytes) -> List[List[Any]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    return [row for row in csv.reader(io.StringIO(text))]


def _read_xlsx(content: bytes) -> List[List[Any]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError) as exc:
        raise _bad_request("Could not read the Excel file") from exc
    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def parse_spreadsheet(filename: Optional[str], content: bytes) -> ParsedSheet:
    """
    Parse the first sheet of a CSV or Excel file.

    The first row is the header. Blank headers become ``Column_<n>``, blank
    cells become None and rows without any value are dropped.
    """
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in IMPORT_EXTENSIONS:
        raise _bad_request("Unsupported file type. Upload a .csv or .xlsx file")

    table = _read_csv(content) if extension == ".csv" else _read_xlsx(content)
    if not table:
        raise _bad_request("The file is empty")

    header, body = table[0], table[1:]
    columns = [
        f"Column_{index + 1}" if _blank(name) else str(name).strip()
        for index, name in enumerate(header)
    ]
    duplicates = sorted({column for column in columns if columns.count(column) > 1})
    if duplicates:
        raise _bad_request(f"Duplicate column names found: {', '.join(duplicates)}")

    rows = []
    for values in body:
        row = {
            column: _cell(values[index]) if index < len(values) else None
            for index, column in enumerate(columns)
        }
        if any(value is not None for value in row.values()):
            rows.append(row)
    if not rows:
        raise _bad_request("The file has no data rows")

    return ParsedSheet(columns=columns, rows=rows, row_count=len(rows), preview=rows[:PREVIEW_ROWS])


def normalize_column_name(name: str) -> str:
    name = re.sub(r"[_\s-]+", " ", name.lower().strip())
    return re.sub(r"[^\w\s]", "", name)


def sanitize_field_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_") or "field"


def parse_number(value: Any) -> Optional[float]:
    """Read ``123``, ``$1,234.56`` or ``1.234,56`` as a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = re.sub(r"[$€£¥\s]", "", str(value))
    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        parts = cleaned.split(",")
        if len(parts) == 2 and len(parts[1]) <= 2:
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")

    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_boolean(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


# Column type detection

def _detect_type(column: str, values: List[Any]) -> Tuple[str, Optional[List[str]], float, str]:
    """Guess a column's type from its name first, then from its values."""
    if not values:
        return "text", None, 0.3, "No data to analyze"

    name = column.lower()
    texts = [str(value) for value in values]

    if "email" in name or "e-mail" in name or name == "mail":
        matches = sum(1 for text in texts if EMAIL_PATTERN.match(text))
        if matches / len(texts) > 0.8:
            return "email", None, 0.9, "Column name and data suggest email"

    if any(word in name for word in ("phone", "tel", "mobile", "contact")):
        return "text", None, 0.7, "Column name suggests phone number"

    if any(word in name for word in ("url", "website", "link")):
        return "text", None, 0.7, "Column name suggests URL"

    if any(word in name for word in ("date", "time", "created", "updated", "birthday", "dob")):
        matches = sum(1 for value in values if parse_date(value) is not None)
        if matches / len(values) > 0.7:
            return "date", None, 0.85, "Column name and data suggest date"

    unique = sorted(set(texts))
    unique_ratio = len(unique) / len(texts)

    if len(unique) <= 2 and all(text.lower() in TRUE_VALUES | FALSE_VALUES for text in unique):
        return "checkbox", None, 0.9, "Only boolean-like values found"

    if 3 <= len(unique) <= 20:
        average = sum(len(text) for text in unique) / len(unique)
        if average < 30 and unique_ratio < 0.3:
            return "dropdown", unique, 0.8, f"{len(unique)} unique values found (suggest categories)"

    numbers = sum(1 for value in values if parse_number(value) is not None)
    if numbers / len(values) > 0.9:
        return "number", None, 0.85, "Values are numeric"

    if sum(len(text) for text in texts) / len(texts) > 100:
        return "textarea", None, 0.7, "Long text values detected"

    return "text", None, 0.6, "Default text field"


def detect_fields(
    columns: List[str],
    rows: List[Dict[str, Any]],
    sample_size: int = 100
) -> Tuple[List[DetectedField], List[str]]:
    """Suggest a field per column from the first ``sample_size`` rows."""
    sample = rows[:sample_size]
    fields = []
    warnings = []

    for column in columns:
        values = [row.get(column) for row in sample if not _blank(row.get(column))]
        field_type, options, confidence, reason = _detect_type(column, values)

        empty = len(sample) - len(values)
        if empty > len(sample) * 0.5:
            warnings.append(f'Column "{column}" has {empty} empty values out of {len(sample)}')

        fields.append(DetectedField(
            name=sanitize_field_name(column),
            label=column,
            type=field_type,
            required=empty == 0,
            options=options,
            confidence=confidence,
            reason=reason,
        ))

    return fields, warnings


def suggest_form_name(filename: Optional[str]) -> str:
    stem = os.path.splitext(os.path.basename(filename or ""))[0]
    name = re.sub(r"[_\-\s]+", " ", stem).strip()
    return name.title() if name else "Imported Form"


# Column mapping

def importable_fields(fields: List[FormField]) -> List[FormField]:
    return [field for field in fields if field.is_input and field.type not in SKIPPED_FIELD_TYPES]


def _match_field(normalized: str, candidates: List[FormField]) -> Tuple[Optional[FormField], Optional[str]]:
    if not normalized:
        return None, None
    labels = [(field, normalize_column_name(field.label)) for field in candidates]

    for field, label in labels:
        if label == normalized:
            return field, "high"
    for field, label in labels:
        if label and (label in normalized or normalized in label):
            return field, "medium"
    words = set(normalized.split())
    for field, label in labels:
        if words & set(label.split()):
            return field, "low"
    return None, None


def auto_map_columns(
    columns: List[str],
    fields: List[FormField]
) -> Tuple[Dict[str, str], List[MappingSuggestion], List[str]]:
    """
    Map columns to fields by label.

    An exact normalized label is a high confidence match, one label
    containing the other is medium and a shared word is low. Each field is
    mapped from at most one column.
    """
    mapping: Dict[str, str] = {}
    suggestions = []
    unmapped = []

    for column in columns:
        candidates = [field for field in importable_fields(fields) if field.id not in mapping.values()]
        field, confidence = _match_field(normalize_column_name(column), candidates)
        if field is None:
            unmapped.append(column)
            continue
        mapping[column] = field.id
        suggestions.append(MappingSuggestion(
            column=column,
            field_id=field.id,
            field_label=field.label,
            confidence=confidence,
        ))

    return mapping, suggestions, unmapped


def unmapped_required_fields(fields: List[FormField], mapping: Dict[str, str]) -> List[FormField]:
    mapped = set(mapping.values())
    return [field for field in importable_fields(fields) if field.required and field.id not in mapped]


def check_mapping(columns: List[str], fields: List[FormField], mapping: Dict[str, str]) -> Dict[str, FormField]:
    """Return the mapped fields by id, refusing unknown columns, unknown fields and duplicates."""
    by_id = {field.id: field for field in importable_fields(fields)}

    missing_columns = [column for column in mapping if column not in columns]
    if missing_columns:
        raise _bad_request(f"Column not found in file: {', '.join(missing_columns)}")
    unknown = [field_id for field_id in mapping.values() if field_id not in by_id]
    if unknown:
        raise _bad_request(f"Cannot import into field: {', '.join(unknown)}")
    if len(set(mapping.values())) != len(mapping):
        raise _bad_request("Each field can only be mapped from one column")
    return by_id


# Row validation

def _split(value: Any) -> List[str]:
    items = value if isinstance(value, list) else re.split(r"[,;]", str(value))
    return [str(item).strip() for item in items if str(item).strip()]


def _option_value(field: FormField, value: Any) -> Optional[str]:
    """The option whose value or label matches ``value``, ignoring case."""
    text = str(value).strip().lower()
    for option in field.options or []:
        if option.value.lower() == text or option.label.lower() == text:
            return option.value
    return None


def _is_multi_choice(field: FormField) -> bool:
    return field.type == "multi_select" or (field.type == "checkbox" and bool(field.options))


def check_value(field: FormField, value: Any) -> Optional[Tuple[str, Optional[str]]]:
    """Return ``(error, suggestion)`` when a non-empty cell does not fit ``field``."""
    extra = field.model_extra or {}
    rules = {rule.type: rule for rule in field.validation}
    valid_values = ", ".join(option.value for option in field.options or [])

    if field.type in ("number", "currency"):
        number = parse_number(value)
        if number is None:
            return "Must be a valid number", "Enter a numeric value (e.g., 123 or 45.99)"
        rule = rules.get("min_value")
        if rule and rule.value is not None and number < float(rule.value):
            return rule.message or f"Must be at least {rule.value}", None
        rule = rules.get("max_value")
        if rule and rule.value is not None and number > float(rule.value):
            return rule.message or f"Must be at most {rule.value}", None
    elif field.type == "email":
        if not EMAIL_PATTERN.match(str(value)):
            return "Must be a valid email address", "Format: user@example.com"
    elif field.type == "phone":
        if not PHONE_PATTERN.match(str(value)):
            return "Must be a valid phone number", "Format: +1-555-1234 or (555) 123-4567"
    elif field.type == "url":
        if not URL_PATTERN.match(str(value)):
            return "Must be a valid URL", "Format: https://example.com"
    elif field.type in ("date", "datetime"):
        if parse_date(value) is None:
            return "Must be a valid date", "Format: YYYY-MM-DD or MM/DD/YYYY"
    elif field.type == "checkbox" and not field.options:
        if parse_boolean(value) is None:
            return "Must be a boolean value", "Use: true/false, yes/no, 1/0"
    elif field.type in ("dropdown", "radio") and field.options:
        if _option_value(field, value) is None:
            return f"Must be one of: {valid_values}", f"Valid values: {valid_values}"
    elif _is_multi_choice(field) and field.options:
        invalid = [item for item in _split(value) if _option_value(field, item) is None]
        if invalid:
            return f"Invalid options: {', '.join(invalid)}", f"Valid values: {valid_values}"
    elif field.type == "rating":
        number = parse_number(value)
        max_rating = extra.get("max_rating") or 5
        if number is None or number < 1 or number > max_rating:
            return f"Must be a number between 1 and {max_rating}", None
    elif field.type == "scale":
        number = parse_number(value)
        low = extra.get("min") if extra.get("min") is not None else 1
        high = extra.get("max") if extra.get("max") is not None else 10
        if number is None or number < low or number > high:
            return f"Must be a number between {low} and {high}", None

    text = str(value)
    rule = rules.get("min_length")
    if rule and rule.value is not None and len(text) < int(rule.value):
        return rule.message or f"Must be at least {rule.value} characters", None
    rule = rules.get("max_length")
    if rule and rule.value is not None and len(text) > int(rule.value):
        return rule.message or f"Must be at most {rule.value} characters", None
    return None


def row_errors(row_number: int, row: Dict[str, Any], mapping: Dict[str, str], fields: Dict[str, FormField]) -> List[RowError]:
    errors = []
    for column, field_id in mapping.items():
        field = fields[field_id]
        value = row.get(column)
        if _blank(value):
            if field.required:
                errors.append(RowError(
                    row=row_number,
                    field=field.label,
                    field_id=field.id,
                    value=value,
                    error=f"{field.label} is required",
                    suggestion="Provide a value for this field",
                ))
            continue

        problem = check_value(field, value)
        if problem:
            error, suggestion = problem
            errors.append(RowError(
                row=row_number,
                field=field.label,
                field_id=field.id,
                value=value,
                error=error,
                suggestion=suggestion,
            ))
    return errors


def transform_value(field: FormField, value: Any) -> Any:
    """Convert a cell that passed ``check_value`` to the answer stored for ``field``."""
    if _blank(value):
        return None
    if field.type in NUMERIC_FIELD_TYPES:
        number = parse_number(value)
        return int(number) if number.is_integer() else number
    if field.type == "checkbox" and not field.options:
        return parse_boolean(value)
    if field.type in ("dropdown", "radio") and field.options:
        return _option_value(field, value)
    if _is_multi_choice(field):
        return [_option_value(field, item) or item for item in _split(value)]
    if field.type == "date":
        return parse_date(value).date().isoformat()
    if field.type == "datetime":
        return parse_date(value).isoformat()
    return str(value).strip()


def validate_rows(
    columns: List[str],
    rows: List[Dict[str, Any]],
    mapping: Dict[str, str],
    fields: List[FormField]
) -> ImportValidation:
    """Check every mapped cell. Only the first errors are listed, but every invalid row is counted."""
    by_id = check_mapping(columns, fields, mapping)

    warnings = [
        f'Required field "{field.label}" is not mapped and will cause import errors'
        for field in unmapped_required_fields(fields, mapping)
    ]
    skipped = [field.label for field in fields if field.type in SKIPPED_FIELD_TYPES]
    if skipped:
        warnings.append(f"File upload fields ({', '.join(skipped)}) will be skipped during import")

    errors = []
    for row_number, row in enumerate(rows, start=1):
        errors.extend(row_errors(row_number, row, mapping, by_id))
    invalid = len({error.row for error in errors})

    return ImportValidation(
        valid_row_count=len(rows) - invalid,
        invalid_row_count=invalid,
        errors=errors[:MAX_REPORTED_ERRORS],
        warnings=warnings,
        skipped_fields=skipped,
    )


def error_report_csv(errors: List[RowError], fields: Dict[str, FormField]) -> str:
    """CSV listing every row error, for download next to a failed import."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(ERROR_REPORT_HEADER)
    for error in errors:
        field = fields.get(error.field_id)
        writer.writerow([
            error.row,
            error.field,
            field.type if field else "",
            "" if error.value is None else error.value,
            error.error,
            error.suggestion or "",
        ])
    return buffer.getvalue()


def _field_from_import(imported: ImportedField, order: int) -> FormField:
    field_type = FIELD_TYPE_FOR_COLUMN[imported.type]
    data = form_schema.create_default_field(field_type, order).model_dump()
    data.update(
        label=imported.label,
        description=imported.description or "",
        required=imported.required,
    )
    if field_type in ("dropdown", "radio"):
        if not imported.options:
            raise _bad_request(f'Field "{imported.label}" needs at least one option')
        data["options"] = [
            {"id": f"option-{index}", "label": option, "value": option}
            for index, option in enumerate(imported.options, start=1)
        ]
    elif field_type == "checkbox":
        # A single yes/no box
        data["options"] = None
    return FormField.model_validate(data)


class ImportService:
    """Service for importing spreadsheets into forms."""

    @staticmethod
    async def read_sheet(file: UploadFile) -> ParsedSheet:
        settings = get_settings()
        content = await read_upload(file, settings.max_upload_size)
        sheet = parse_spreadsheet(file.filename, content)
        if sheet.row_count > settings.max_import_rows:
            raise _bad_request(
                f"The file has {sheet.row_count} rows. At most {settings.max_import_rows} rows can be imported at once"
            )
        return sheet

    @staticmethod
    def analyze(filename: Optional[str], sheet: ParsedSheet) -> ImportAnalysis:
        """Suggest the fields of a new form built from ``sheet``."""
        fields, warnings = detect_fields(sheet.columns, sheet.rows)
        return ImportAnalysis(
            columns=sheet.columns,
            row_count=sheet.row_count,
            preview=sheet.preview,
            detected_fields=fields,
            warnings=warnings,
            suggested_form_name=suggest_form_name(filename),
        )

    @staticmethod
    def preview(form: Form, sheet: ParsedSheet) -> ImportPreview:
        """Suggest how the columns of ``sheet`` map onto an existing form."""
        fields = form_schema.fields_from_db(form.fields)
        mapping, suggestions, unmapped = auto_map_columns(sheet.columns, fields)
        return ImportPreview(
            columns=sheet.columns,
            row_count=sheet.row_count,
            preview=sheet.preview,
            mapping=mapping,
            suggestions=suggestions,
            unmapped_columns=unmapped,
            unmapped_required_fields=[field.label for field in unmapped_required_fields(fields, mapping)],
        )

    @staticmethod
    def validate(form: Form, sheet: ParsedSheet, mapping: Dict[str, str]) -> ImportValidation:
        fields = form_schema.fields_from_db(form.fields)
        return validate_rows(sheet.columns, sheet.rows, mapping, fields)

    @staticmethod
    def error_report(form: Form, sheet: ParsedSheet, mapping: Dict[str, str]) -> str:
        fields = form_schema.fields_from_db(form.fields)
        by_id = check_mapping(sheet.columns, fields, mapping)
        errors = []
        for row_number, row in enumerate(sheet.rows, start=1):
            errors.extend(row_errors(row_number, row, mapping, by_id))
        return error_report_csv(errors, by_id)

    @staticmethod
    def import_rows(
        db: Session,
        form: Form,
        ctx: UserContext,
        sheet: ParsedSheet,
        mapping: Dict[str, str],
        skip_invalid: bool = True
    ) -> ImportResult:
        """
        Store each valid row as a completed submission.

        Rows with errors are skipped when ``skip_invalid`` is set; otherwise
        any error aborts the import before anything is written.
        """
        ensure_data_scope(ctx, form.company_id, "write")
        definition = form_schema.from_db(form)
        by_id = check_mapping(sheet.columns, definition.fields, mapping)

        missing = unmapped_required_fields(definition.fields, mapping)
        if missing:
            raise _bad_request(
                f"Map a column to every required field: {', '.join(field.label for field in missing)}"
            )

        completed = SubmissionService.completed_count(db, form.id)
        can_accept, reason = can_accept_submissions(form, completed)
        if not can_accept:
            raise _bad_request(reason)

        errors = []
        valid_rows = []
        for row_number, row in enumerate(sheet.rows, start=1):
            problems = row_errors(row_number, row, mapping, by_id)
            if problems:
                errors.extend(problems)
            else:
                valid_rows.append(row)
        failed = len({error.row for error in errors})

        if errors and not skip_invalid:
            raise _bad_request({
                "message": f"{failed} row(s) have errors. Fix them or skip invalid rows",
                "errors": [error.model_dump() for error in errors[:MAX_REPORTED_ERRORS]],
            })

        limit = definition.access_control.max_submissions
        if limit is not None and completed + len(valid_rows) > limit:
            raise _bad_request(
                f"Importing {len(valid_rows)} rows would exceed this form's limit of {limit} submissions"
            )

        now = datetime.utcnow()
        for row in valid_rows:
            data = {}
            for column, field_id in mapping.items():
                value = transform_value(by_id[field_id], row.get(column))
                if value is not None:
                    data[field_id] = value
            db.add(FormSubmission(
                form_id=form.id,
                form_version=form.version,
                company_id=form.company_id,
                data=data,
                status=SubmissionStatus.COMPLETED,
                is_anonymous=True,
                started_at=now,
                submitted_at=now,
                last_saved_at=now,
            ))
        db.flush()

        SubmissionService.refresh_metadata(db, form)
        AuditService.record(
            db,
            action="submissions_imported",
            resource_type="form",
            resource_id=form.id,
            user_id=ctx.user_id,
            company_id=form.company_id,
            details={"imported": len(valid_rows), "failed": failed, "columns": sorted(mapping)},
        )
        db.commit()
        logger.info("Imported %s rows into form %s (%s failed)", len(valid_rows), form.id, failed)
        return ImportResult(imported=len(valid_rows), failed=failed, errors=errors[:MAX_REPORTED_ERRORS])

    @staticmethod
    def create_form_from_import(
        db: Session,
        company_id: int,
        ctx: UserContext,
        sheet: ParsedSheet,
        data: FormFromImport
    ) -> Tuple[Form, Optional[ImportResult]]:
        """Build and publish a form with one field per chosen column, then optionally import the rows."""
        columns = [imported.column for imported in data.fields]
        missing_columns = [column for column in columns if column not in sheet.columns]
        if missing_columns:
            raise _bad_request(f"Column not found in file: {', '.join(missing_columns)}")
        if len(set(columns)) != len(columns):
            raise _bad_request("Each column can only be used for one field")

        fields = [_field_from_import(imported, order) for order, imported in enumerate(data.fields)]
        form = FormService.create_form(db, company_id, ctx, FormCreate(
            name=data.name,
            description=data.description,
            fields=fields,
            settings=FormSettings(
                allow_anonymous=True,
                require_login=False,
                allow_multiple_submissions=True,
            ),
        ))
        form = FormService.publish_form(db, company_id, form.id, ctx)

        result = None
        if data.import_data:
            mapping = {imported.column: field.id for imported, field in zip(data.fields, fields)}
            result = ImportService.import_rows(db, form, ctx, sheet, mapping)
        return form, result
