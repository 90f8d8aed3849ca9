"""Form availability checks and submission validation."""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from tenantforms.models.form import FormStatus
from tenantforms.schemas.form import (
    CHOICE_FIELD_TYPES,
    FormAccessControl,
    FormField,
    LAYOUT_FIELD_TYPES,
)
from tenantforms.services import form_schema

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-().]{7,20}$")
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


def _access_control(form) -> FormAccessControl:
    return form_schema.from_db(form).access_control


def _naive_utc(value: datetime) -> datetime:
    """Naive UTC datetime for comparing with ``datetime.utcnow()``."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def is_form_expired(form, now: Optional[datetime] = None) -> bool:
    expires_at = _access_control(form).expires_at
    if expires_at is None:
        return False
    now = now or datetime.utcnow()
    return _naive_utc(expires_at) < now


def can_accept_submissions(
    form,
    current_submission_count: Optional[int] = None,
    now: Optional[datetime] = None
) -> Tuple[bool, Optional[str]]:
    """Return ``(can_accept, reason)``. ``reason`` is set only when rejected."""
    if form.status != FormStatus.PUBLISHED:
        return False, f"This form is currently {form.status}. Only published forms can accept submissions."

    access_control = _access_control(form)
    if is_form_expired(form, now):
        expiry = _naive_utc(access_control.expires_at).strftime("%Y-%m-%d %H:%M")
        return False, f"This form expired on {expiry}. It is no longer accepting submissions."

    max_submissions = access_control.max_submissions
    if (
        max_submissions is not None
        and current_submission_count is not None
        and current_submission_count >= max_submissions
    ):
        return False, f"This form has reached its maximum limit of {max_submissions} submissions."

    return True, None


def get_expiry_status(form, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Describe the form's expiry for display."""
    expires_at = _access_control(form).expires_at
    if expires_at is None:
        return {"has_expiry": False, "is_expired": False}

    now = now or datetime.utcnow()
    expiry = _naive_utc(expires_at)
    if expiry < now:
        return {
            "has_expiry": True,
            "is_expired": True,
            "expiry_date": expiry,
            "message": f"Expired on {expiry.date().isoformat()}",
        }

    # Whole UTC calendar days between now and the expiry date
    days_remaining = (expiry.date() - now.date()).days
    if days_remaining == 0:
        message = "Expires today"
    elif days_remaining == 1:
        message = "Expires tomorrow"
    elif days_remaining <= 7:
        message = f"Expires in {days_remaining} days"
    elif days_remaining <= 30:
        message = f"Expires in {math.ceil(days_remaining / 7)} weeks"
    else:
        message = f"Expires on {expiry.date().isoformat()}"

    return {
        "has_expiry": True,
        "is_expired": False,
        "expiry_date": expiry,
        "message": message,
    }


def validate_form_for_publishing(form) -> Tuple[bool, List[str]]:
    errors = []
    fields = form_schema.from_db(form).fields

    if not fields:
        errors.append("Form must have at least one field")

    if not form.name or not form.name.strip():
        errors.append("Form must have a name")

    missing_labels = [field for field in fields if not field.label or not field.label.strip()]
    if missing_labels:
        errors.append(f"{len(missing_labels)} field(s) are missing labels")

    return len(errors) == 0, errors


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _check_rule(field: FormField, rule, value: Any) -> Optional[str]:
    """Return an error message when ``value`` breaks ``rule``."""
    label = field.label or field.id
    text = value if isinstance(value, str) else None

    if rule.type == "min_length" and rule.value is not None:
        if text is not None and len(text) < int(rule.value):
            return rule.message or f"{label} must be at least {rule.value} characters"
    elif rule.type == "max_length" and rule.value is not None:
        if text is not None and len(text) > int(rule.value):
            return rule.message or f"{label} must be at most {rule.value} characters"
    elif rule.type in ("min_value", "max_value") and rule.value is not None:
        number = _number(value)
        if number is None:
            return rule.message or f"{label} must be a number"
        if rule.type == "min_value" and number < float(rule.value):
            return rule.message or f"{label} must be at least {rule.value}"
        if rule.type == "max_value" and number > float(rule.value):
            return rule.message or f"{label} must be at most {rule.value}"
    elif rule.type == "regex" and rule.value:
        try:
            pattern = re.compile(str(rule.value))
        except re.error:
            logger.warning("Ignoring invalid pattern on field %s", field.id)
            return None
        if text is None or not pattern.search(text):
            return rule.message or f"{label} is not in the expected format"
    elif rule.type == "email_format":
        if text is None or not EMAIL_PATTERN.match(text):
            return rule.message or "Please enter a valid email address"
    elif rule.type == "phone_format":
        if text is None or not PHONE_PATTERN.match(text):
            return rule.message or "Please enter a valid phone number"
    elif rule.type == "url_format":
        if text is None or not URL_PATTERN.match(text):
            return rule.message or "Please enter a valid URL"
    return None


def _check_options(field: FormField, value: Any) -> Optional[str]:
    if field.type not in CHOICE_FIELD_TYPES or not field.options:
        return None
    if (field.model_extra or {}).get("allow_other"):
        return None
    allowed = {option.value for option in field.options}
    chosen = value if isinstance(value, list) else [value]
    invalid = [item for item in chosen if item not in allowed]
    if invalid:
        return f"{field.label or field.id} has an invalid option"
    return None


def validate_submission_data(
    fields: List[FormField],
    data: Dict[str, Any],
    visible: Optional[Set[str]] = None,
    required: Optional[Set[str]] = None
) -> Dict[str, str]:
    """
    Validate answers against field definitions.

    ``visible`` and ``required`` are the field ids produced by conditional
    logic; by default every field is visible and the field's own ``required``
    flag applies. Returns one error message per failing field id.
    """
    errors: Dict[str, str] = {}

    for field in fields:
        if field.type in LAYOUT_FIELD_TYPES:
            continue
        if visible is not None and field.id not in visible:
            continue

        value = data.get(field.id)
        is_required = field.id in required if required is not None else field.required
        if _is_blank(value):
            if is_required:
                errors[field.id] = f"{field.label or field.id} is required"
            continue

        for rule in field.validation:
            if rule.type == "required":
                continue
            message = _check_rule(field, rule, value)
            if message:
                errors[field.id] = message
                break
        else:
            message = _check_options(field, value)
            if message:
                errors[field.id] = message

    return errors
