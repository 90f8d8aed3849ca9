"""Submission analytics for forms and companies."""

import logging
import statistics
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from tenantforms.models.form import Form, FormSubmission, SubmissionStatus
from tenantforms.schemas.form import CHOICE_FIELD_TYPES, NUMERIC_FIELD_TYPES, FormField
from tenantforms.services import form_schema

logger = logging.getLogger(__name__)

TIMELINE_DAYS = 30
TOP_VALUES = 10


def _is_completed(submission: FormSubmission) -> bool:
    return submission.status == SubmissionStatus.COMPLETED


def submissions_per_day(
    submissions: List[FormSubmission],
    days: int = TIMELINE_DAYS,
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """Daily submission counts for the last ``days`` days, oldest first, zero-filled."""
    today = (now or datetime.utcnow()).date()
    start = today - timedelta(days=days - 1)
    counts = Counter(
        s.started_at.date() for s in submissions
        if s.started_at and start <= s.started_at.date() <= today
    )
    return [
        {"date": (start + timedelta(days=i)).isoformat(), "count": counts.get(start + timedelta(days=i), 0)}
        for i in range(days)
    ]


def average_completion_seconds(submissions: List[FormSubmission]) -> Optional[float]:
    durations = [
        (s.submitted_at - s.started_at).total_seconds()
        for s in submissions
        if _is_completed(s) and s.submitted_at and s.started_at
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 2)


def form_analytics(
    submissions: List[FormSubmission],
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Counts, conversion rate, completion time and the 30-day timeline."""
    total = len(submissions)
    completed = sum(1 for s in submissions if _is_completed(s))
    return {
        "total_submissions": total,
        "completed_submissions": completed,
        "draft_submissions": total - completed,
        "conversion_rate": round(completed / total * 100, 2) if total else 0.0,
        "average_completion_time": average_completion_seconds(submissions),
        "submissions_per_day": submissions_per_day(submissions, now=now),
    }


def _hashable(value: Any) -> Any:
    return value if isinstance(value, (str, int, float, bool)) else str(value)


def field_analytics(field: FormField, submissions: List[FormSubmission]) -> Dict[str, Any]:
    """Distribution for choice fields and numeric stats for number-like fields."""
    values = [
        (s.data or {}).get(field.id) for s in submissions
        if _is_completed(s)
    ]
    answered = [v for v in values if v not in (None, "", [])]
    result: Dict[str, Any] = {
        "field_id": field.id,
        "label": field.label,
        "type": field.type,
        "response_count": len(answered),
    }

    if field.type in CHOICE_FIELD_TYPES:
        counter: Counter = Counter()
        for value in answered:
            for item in (value if isinstance(value, list) else [value]):
                counter[_hashable(item)] += 1
        labels = {option.value: option.label for option in (field.options or [])}
        result["distribution"] = [
            {"value": value, "label": labels.get(value, str(value)), "count": count}
            for value, count in counter.most_common(TOP_VALUES)
        ]
        result["most_common"] = counter.most_common(1)[0][0] if counter else None
        result["unique_values"] = len(counter)

    elif field.type in NUMERIC_FIELD_TYPES:
        numbers = []
        for value in answered:
            try:
                numbers.append(float(value))
            except (TypeError, ValueError):
                continue
        if numbers:
            result["stats"] = {
                "min": min(numbers),
                "max": max(numbers),
                "avg": round(sum(numbers) / len(numbers), 2),
                "median": statistics.median(numbers),
            }
        else:
            result["stats"] = None

    return result


class AnalyticsService:
    """Service for analytics queries."""

    @staticmethod
    def get_form_analytics(db: Session, form: Form) -> Dict[str, Any]:
        submissions = db.query(FormSubmission).filter(FormSubmission.form_id == form.id).all()
        fields = form_schema.from_db(form).fields

        analytics = form_analytics(submissions)
        analytics["form_id"] = form.id
        analytics["fields"] = [field_analytics(f, submissions) for f in fields if f.is_input]
        return analytics

    @staticmethod
    def get_company_analytics(db: Session, company_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Totals for a company plus this month against last month."""
        now = now or datetime.utcnow()
        this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        last_month = (this_month - timedelta(days=1)).replace(day=1)

        counts = dict(
            db.query(FormSubmission.status, func.count(FormSubmission.id))
            .filter(FormSubmission.company_id == company_id)
            .group_by(FormSubmission.status)
            .all()
        )
        base = db.query(FormSubmission).filter(FormSubmission.company_id == company_id)
        current = base.filter(FormSubmission.started_at >= this_month).count()
        previous = base.filter(
            FormSubmission.started_at >= last_month,
            FormSubmission.started_at < this_month
        ).count()

        completed = counts.get(SubmissionStatus.COMPLETED, 0)
        drafts = counts.get(SubmissionStatus.DRAFT, 0)
        return {
            "total_forms": db.query(Form).filter(Form.company_id == company_id).count(),
            "total_submissions": completed + drafts,
            "completed_submissions": completed,
            "draft_submissions": drafts,
            "submissions_this_month": current,
            "submissions_last_month": previous,
        }
