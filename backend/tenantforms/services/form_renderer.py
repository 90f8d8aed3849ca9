"""Turns form definitions into UI control descriptors and applies conditional logic."""

import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from tenantforms.schemas.form import (
    ConditionalCondition,
    ConditionalRule,
    FormDefinition,
    FormField,
    LAYOUT_FIELD_TYPES,
)

logger = logging.getLogger(__name__)


def _options(field: FormField) -> List[Dict[str, Any]]:
    return [option.model_dump(exclude_none=True) for option in (field.options or [])]


def _extra(field: FormField, key: str, default: Any = None) -> Any:
    return (field.model_extra or {}).get(key, default)


def _text_input(input_type: str) -> Callable[[FormField], Dict[str, Any]]:
    def render(field: FormField) -> Dict[str, Any]:
        return {
            "control": "input",
            "input_type": input_type,
            "min_length": _extra(field, "min_length"),
            "max_length": _extra(field, "max_length"),
        }
    return render


def _number_input(field: FormField) -> Dict[str, Any]:
    descriptor = {
        "control": "input",
        "input_type": "number",
        "min": _extra(field, "min"),
        "max": _extra(field, "max"),
        "step": _extra(field, "step", 1),
    }
    if field.type == "currency":
        descriptor["prefix"] = _extra(field, "currency_symbol", "$")
    return descriptor


def _date_input(input_type: str) -> Callable[[FormField], Dict[str, Any]]:
    def render(field: FormField) -> Dict[str, Any]:
        return {
            "control": "input",
            "input_type": input_type,
            "min_date": _extra(field, "min_date"),
            "max_date": _extra(field, "max_date"),
            "format": _extra(field, "format"),
        }
    return render


def _date_range(field: FormField) -> Dict[str, Any]:
    return {
        "control": "date_range",
        "input_type": "date",
        "min_date": _extra(field, "min_date"),
        "max_date": _extra(field, "max_date"),
    }


def _select(field: FormField) -> Dict[str, Any]:
    return {"control": "select", "options": _options(field), "allow_other": _extra(field, "allow_other", False)}


def _radio(field: FormField) -> Dict[str, Any]:
    return {"control": "radio_group", "options": _options(field), "allow_other": _extra(field, "allow_other", False)}


def _checkbox(field: FormField) -> Dict[str, Any]:
    options = _options(field)
    # A checkbox without options is a single yes/no box
    if not options:
        return {"control": "checkbox", "options": []}
    return {"control": "checkbox_group", "options": options, "multiple": True}


def _multi_select(field: FormField) -> Dict[str, Any]:
    return {"control": "multi_select", "options": _options(field), "multiple": True}


def _file_upload(field: FormField) -> Dict[str, Any]:
    return {
        "control": "file_upload",
        "accept": _extra(field, "allowed_types", []),
        "max_size_mb": _extra(field, "max_size", 10),
        "max_files": _extra(field, "max_files", 1),
        "bucket": "images" if field.type == "image_upload" else "documents",
    }


def _signature(field: FormField) -> Dict[str, Any]:
    return {"control": "signature_pad"}


def _rating(field: FormField) -> Dict[str, Any]:
    return {"control": "rating", "max": _extra(field, "max_rating", 5), "icon": _extra(field, "icon", "star")}


def _scale(field: FormField) -> Dict[str, Any]:
    return {
        "control": "scale",
        "min": _extra(field, "min", 1),
        "max": _extra(field, "max", 10),
        "step": _extra(field, "step", 1),
        "min_label": _extra(field, "min_label"),
        "max_label": _extra(field, "max_label"),
    }


def _matrix(field: FormField) -> Dict[str, Any]:
    return {
        "control": "matrix",
        "rows": _extra(field, "rows", []),
        "columns": _extra(field, "columns", []),
        "multiple": _extra(field, "allow_multiple", False),
    }


def _location(field: FormField) -> Dict[str, Any]:
    return {
        "control": "location",
        "enable_map": _extra(field, "enable_map", False),
        "enable_geolocation": _extra(field, "enable_geolocation", False),
    }


def _address(field: FormField) -> Dict[str, Any]:
    parts = _extra(field, "fields") or {
        "street": True, "city": True, "state": True, "zip_code": True, "country": True
    }
    return {"control": "address", "parts": [name for name, enabled in parts.items() if enabled]}


def _rich_text(field: FormField) -> Dict[str, Any]:
    return {"control": "rich_text", "toolbar": _extra(field, "toolbar", [])}


def _section_header(field: FormField) -> Dict[str, Any]:
    return {"control": "heading", "size": _extra(field, "size", "medium")}


def _divider(field: FormField) -> Dict[str, Any]:
    return {"control": "divider", "style": _extra(field, "style", "solid")}


FIELD_RENDERERS: Dict[str, Callable[[FormField], Dict[str, Any]]] = {
    "short_text": _text_input("text"),
    "long_text": lambda field: {"control": "textarea", **_text_input("text")(field)},
    "email": _text_input("email"),
    "phone": _text_input("tel"),
    "url": _text_input("url"),
    "number": _number_input,
    "currency": _number_input,
    "date": _date_input("date"),
    "datetime": _date_input("datetime-local"),
    "date_range": _date_range,
    "time": _date_input("time"),
    "dropdown": _select,
    "radio": _radio,
    "checkbox": _checkbox,
    "multi_select": _multi_select,
    "file_upload": _file_upload,
    "image_upload": _file_upload,
    "signature": _signature,
    "rating": _rating,
    "scale": _scale,
    "matrix": _matrix,
    "location": _location,
    "address": _address,
    "rich_text": _rich_text,
    "section_header": _section_header,
    "divider": _divider,
}


def render_field(field: FormField, required: Optional[bool] = None) -> Dict[str, Any]:
    """Describe the UI control for ``field``. Unknown types render as a text input."""
    renderer = FIELD_RENDERERS.get(field.type)
    if renderer is None:
        logger.warning("Unknown field type '%s' for field %s, rendering as text", field.type, field.id)
        renderer = FIELD_RENDERERS["short_text"]

    descriptor = {
        "id": field.id,
        "type": field.type,
        "label": field.label,
        "description": field.description,
        "placeholder": field.placeholder,
        "required": field.required if required is None else required,
        "width": field.layout.width,
        "order": field.order,
    }
    descriptor.update(renderer(field))
    return descriptor


# Conditional logic

def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _as_number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _compare(left: Any, right: Any, op: Callable[[float, float], bool]) -> bool:
    a, b = _as_number(left), _as_number(right)
    if a is None or b is None:
        return False
    return op(a, b)


def _contains(haystack: Any, needle: Any) -> bool:
    if haystack is None:
        return False
    if isinstance(haystack, (list, tuple, set)):
        return needle in haystack
    return str(needle).lower() in str(haystack).lower()


def _equals(left: Any, right: Any) -> bool:
    if isinstance(left, list):
        return right in left
    if left == right:
        return True
    return left is not None and right is not None and str(left) == str(right)


CONDITION_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equals": _equals,
    "not_equals": lambda left, right: not _equals(left, right),
    "contains": _contains,
    "not_contains": lambda left, right: not _contains(left, right),
    "greater_than": lambda left, right: _compare(left, right, lambda a, b: a > b),
    "less_than": lambda left, right: _compare(left, right, lambda a, b: a < b),
    "is_empty": lambda left, right: _is_empty(left),
    "is_not_empty": lambda left, right: not _is_empty(left),
}


def evaluate_condition(condition: ConditionalCondition, answers: Dict[str, Any]) -> bool:
    return CONDITION_OPERATORS[condition.operator](answers.get(condition.field_id), condition.value)


def evaluate_rule(rule: ConditionalRule, answers: Dict[str, Any]) -> bool:
    if not rule.conditions:
        return False
    results = [evaluate_condition(c, answers) for c in rule.conditions]
    return all(results) if rule.logic_operator == "AND" else any(results)


def apply_conditional_logic(
    definition: FormDefinition,
    answers: Dict[str, Any]
) -> Tuple[Set[str], Set[str]]:
    """
    Return ``(visible, required)`` field ids for the current answers.

    A field targeted by a ``show`` rule is hidden until the rule matches.
    ``hide`` removes a field while its rule matches and ``require`` makes it
    mandatory. Layout fields are never required.
    """
    visible = {field.id for field in definition.fields}
    required = {field.id for field in definition.fields if field.required}

    show_targets = {rule.target_field_id for rule in definition.conditional_logic if rule.action == "show"}
    visible -= show_targets

    for rule in definition.conditional_logic:
        if not evaluate_rule(rule, answers):
            continue
        if rule.action == "show":
            visible.add(rule.target_field_id)
        elif rule.action == "hide":
            visible.discard(rule.target_field_id)
        elif rule.action == "require":
            required.add(rule.target_field_id)

    layout_ids = {field.id for field in definition.fields if field.type in LAYOUT_FIELD_TYPES}
    known = {field.id for field in definition.fields}
    return visible & known, (required & visible) - layout_ids


def render_form(definition: FormDefinition, answers: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Render every step with its visible fields for the given answers."""
    answers = answers or {}
    visible, required = apply_conditional_logic(definition, answers)
    fields_by_id = {field.id: field for field in definition.fields}

    steps = sorted(definition.steps, key=lambda step: step.order)
    assigned = {field_id for step in steps for field_id in step.fields}
    unassigned = sorted(
        (field for field in definition.fields if field.id not in assigned),
        key=lambda field: field.order,
    )

    rendered_steps = []
    for index, step in enumerate(steps):
        step_fields = [fields_by_id[field_id] for field_id in step.fields if field_id in fields_by_id]
        if index == len(steps) - 1:
            step_fields += unassigned
        rendered_steps.append({
            "id": step.id,
            "title": step.title,
            "description": step.description,
            "order": step.order,
            "fields": [
                render_field(field, required=field.id in required)
                for field in step_fields
                if field.id in visible
            ],
        })

    skip_to = None
    for rule in definition.conditional_logic:
        if rule.action == "skip_to" and rule.skip_to_step_id and evaluate_rule(rule, answers):
            skip_to = rule.skip_to_step_id
            break

    return {
        "steps": rendered_steps,
        "settings": definition.settings.model_dump(mode="json"),
        "theme": definition.theme.model_dump(mode="json"),
        "skip_to_step_id": skip_to,
    }
