"""Helpers for the JSON side of a form: encoding, decoding and defaults."""

import copy
import json
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from tenantforms.schemas.form import (
    CHOICE_FIELD_TYPES,
    FormAccessControl,
    FormDefinition,
    FormField,
    FormMetadata,
    FormResponse,
    FormSettings,
    FormStep,
    FormTheme,
    ConditionalRule,
)

logger = logging.getLogger(__name__)

DEFINITION_COLUMNS = {
    "fields": "fields",
    "steps": "steps",
    "conditional_logic": "conditional_logic",
    "settings": "settings",
    "theme": "theme",
    "access_control": "access_control",
    "metadata": "form_metadata",
}


def default_steps() -> List[FormStep]:
    return [FormStep(id="step-1", title="", description="", fields=[], order=1)]


def _decode(value: Any) -> Any:
    """Accept JSON text as well as already-decoded values."""
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except ValueError:
            logger.error("Could not parse stored form JSON")
            return None
    return value


def fields_to_db(fields: List[FormField]) -> List[Dict[str, Any]]:
    return [field.model_dump(mode="json") for field in fields]


def fields_from_db(raw: Any) -> List[FormField]:
    return [FormField.model_validate(item) for item in (_decode(raw) or [])]


def steps_to_db(steps: List[FormStep]) -> List[Dict[str, Any]]:
    return [step.model_dump(mode="json") for step in steps]


def steps_from_db(raw: Any) -> List[FormStep]:
    steps = [FormStep.model_validate(item) for item in (_decode(raw) or [])]
    return steps or default_steps()


def compute_metadata(
    fields: List[FormField],
    steps: List[FormStep],
    existing: Optional[FormMetadata] = None
) -> FormMetadata:
    """Refresh the field/step counters, keeping response counts."""
    metadata = existing.model_copy() if existing else FormMetadata()
    metadata.total_fields = len(fields)
    metadata.total_steps = len(steps) or 1
    return metadata


def to_db(definition: FormDefinition) -> Dict[str, Any]:
    """Encode a definition into JSON-compatible values, keyed by column attribute."""
    return {
        "fields": fields_to_db(definition.fields),
        "steps": steps_to_db(definition.steps),
        "conditional_logic": [rule.model_dump(mode="json") for rule in definition.conditional_logic],
        "settings": definition.settings.model_dump(mode="json"),
        "theme": definition.theme.model_dump(mode="json"),
        "access_control": definition.access_control.model_dump(mode="json"),
        "form_metadata": definition.metadata.model_dump(mode="json"),
    }


def _part(source: Any, key: str) -> Any:
    if isinstance(source, Mapping):
        value = source.get(key)
        if value is None and key in DEFINITION_COLUMNS:
            value = source.get(DEFINITION_COLUMNS[key])
        return _decode(value)
    return _decode(getattr(source, DEFINITION_COLUMNS.get(key, key), None))


def from_db(source: Any) -> FormDefinition:
    """
    Decode a stored definition, filling defaults for anything missing.

    ``source`` may be a ``Form`` row or a mapping of column values; values
    may be JSON text or decoded structures.
    """
    fields = fields_from_db(_part(source, "fields"))
    steps = steps_from_db(_part(source, "steps"))
    conditional_logic = [
        ConditionalRule.model_validate(rule) for rule in (_part(source, "conditional_logic") or [])
    ]

    settings = _part(source, "settings")
    theme = _part(source, "theme")
    access_control = _part(source, "access_control")
    metadata = _part(source, "metadata")

    try:
        parsed_metadata = FormMetadata.model_validate(metadata) if metadata else None
    except ValidationError:
        logger.warning("Discarding invalid stored form metadata")
        parsed_metadata = None

    return FormDefinition(
        fields=fields,
        steps=steps,
        conditional_logic=conditional_logic,
        settings=FormSettings.model_validate(settings) if settings else FormSettings(),
        theme=FormTheme.model_validate(theme) if theme else FormTheme(),
        access_control=(
            FormAccessControl.model_validate(access_control) if access_control else FormAccessControl()
        ),
        metadata=parsed_metadata or compute_metadata(fields, steps),
    )


def to_response(form) -> FormResponse:
    """Build the API representation of a ``Form`` row."""
    definition = from_db(form)
    return FormResponse(
        id=form.id,
        company_id=form.company_id,
        name=form.name,
        description=form.description,
        status=form.status,
        version=form.version,
        is_template=form.is_template,
        template_category=form.template_category,
        fields=definition.fields,
        steps=definition.steps,
        conditional_logic=definition.conditional_logic,
        settings=definition.settings,
        theme=definition.theme,
        access_control=definition.access_control,
        metadata=definition.metadata,
        created_by_id=form.created_by_id,
        updated_by_id=form.updated_by_id,
        created_at=form.created_at,
        updated_at=form.updated_at,
        published_at=form.published_at,
    )


def type_label(field_type: str) -> str:
    return " ".join(word.capitalize() for word in field_type.split("_"))


# Type-specific properties a freshly added field starts with
FIELD_TYPE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "number": {"step": 1},
    "currency": {"step": 0.01, "currency_symbol": "$"},
    "date": {"format": "YYYY-MM-DD"},
    "datetime": {"format": "YYYY-MM-DD HH:mm"},
    "file_upload": {"max_size": 10, "allowed_types": [], "max_files": 1},
    "image_upload": {"max_size": 5, "allowed_types": ["image/png", "image/jpeg"], "max_files": 1},
    "rating": {"max_rating": 5, "icon": "star"},
    "scale": {"min": 1, "max": 10, "step": 1, "min_label": "", "max_label": ""},
    "matrix": {
        "rows": [{"id": "row-1", "label": "Row 1", "value": "row_1"}],
        "columns": [{"id": "col-1", "label": "Column 1", "value": "col_1"}],
        "allow_multiple": False,
    },
    "location": {"enable_map": True, "enable_geolocation": False},
    "address": {
        "fields": {"street": True, "city": True, "state": True, "zip_code": True, "country": True}
    },
    "rich_text": {"toolbar": ["bold", "italic", "underline", "link"]},
    "section_header": {"size": "medium"},
    "divider": {"style": "solid"},
}


def create_default_field(field_type: str, order: int) -> FormField:
    """A new field of ``field_type`` with a unique id and a readable label."""
    data: Dict[str, Any] = {
        "id": f"field-{uuid.uuid4().hex[:12]}",
        "type": field_type,
        "label": f"{type_label(field_type)} Field",
        "description": "",
        "placeholder": "",
        "required": False,
        "validation": [],
        "layout": {"width": "full", "columns": 1},
        "order": order,
    }
    if field_type in CHOICE_FIELD_TYPES:
        data["options"] = [
            {"id": "option-1", "label": "Option 1", "value": "option_1"},
            {"id": "option-2", "label": "Option 2", "value": "option_2"},
        ]
        if field_type == "multi_select":
            data["multiple_select"] = True
    data.update(copy.deepcopy(FIELD_TYPE_DEFAULTS.get(field_type, {})))
    return FormField.model_validate(data)
