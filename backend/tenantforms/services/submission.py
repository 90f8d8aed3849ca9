"""Submission service for public respondents and company members."""

import logging
import secrets
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import func
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from tenantforms.constants import EDITOR_ROLES
from tenantforms.models.form import Form, FormStatus, FormSubmission, SubmissionStatus, SubmissionVersion
from tenantforms.schemas.submission import (
    FilterCondition,
    FilterGroup,
    SortConfig,
    SubmissionCreate,
    SubmissionFilterQuery,
    SubmissionUpdate,
)
from tenantforms.services import form_schema
from tenantforms.services.access import UserContext, ensure_data_scope
from tenantforms.services.audit import AuditService
from tenantforms.services.form_renderer import apply_conditional_logic, render_form
from tenantforms.services.form_validation import (
    can_accept_submissions,
    get_expiry_status,
    validate_submission_data,
)

logger = logging.getLogger(__name__)

# Submission columns that can be filtered and sorted like answers
SUBMISSION_COLUMNS = {
    "id": "id",
    "status": "status",
    "started_at": "started_at",
    "submitted_at": "submitted_at",
    "submitted_by_email": "submitted_by_email",
}


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _ordered(left: Any, right: Any):
    """Pair values for ordering comparisons, numerically when both are numbers."""
    a, b = _number(left), _number(right)
    if a is not None and b is not None:
        return a, b
    if left is None or right is None:
        return None
    return str(left), str(right)


def _text(value: Any) -> str:
    return "" if value is None else str(value).lower()


def matches_condition(value: Any, condition: FilterCondition) -> bool:
    """Evaluate one filter condition against a submission value."""
    op = condition.operator
    target = condition.value

    if op == "is_null":
        return value is None or value == "" or value == []
    if op == "is_not_null":
        return not (value is None or value == "" or value == [])
    if op == "equals":
        if isinstance(value, list):
            return target in value
        return value == target or _text(value) == _text(target)
    if op == "not_equals":
        return not matches_condition(value, condition.model_copy(update={"operator": "equals"}))
    if op == "contains":
        if isinstance(value, list):
            return target in value
        return _text(target) in _text(value)
    if op == "not_contains":
        return not matches_condition(value, condition.model_copy(update={"operator": "contains"}))
    if op == "starts_with":
        return _text(value).startswith(_text(target))
    if op == "ends_with":
        return _text(value).endswith(_text(target))
    if op == "in":
        return value in (target or [])
    if op == "not_in":
        return value not in (target or [])

    if op == "between":
        low, high = _ordered(value, target), _ordered(value, condition.value2)
        if low is None or high is None:
            return False
        return low[1] <= low[0] and high[0] <= high[1]

    pair = _ordered(value, target)
    if pair is None:
        return False
    a, b = pair
    if op == "greater_than":
        return a > b
    if op == "greater_than_or_equal":
        return a >= b
    if op == "less_than":
        return a < b
    if op == "less_than_or_equal":
        return a <= b
    return False


def _submission_value(submission: FormSubmission, field_id: str) -> Any:
    if field_id in SUBMISSION_COLUMNS:
        value = getattr(submission, SUBMISSION_COLUMNS[field_id])
        return value.value if isinstance(value, SubmissionStatus) else value
    return (submission.data or {}).get(field_id)


def matches_group(submission: FormSubmission, group: FilterGroup) -> bool:
    if not group.conditions:
        return True
    results = [
        matches_condition(_submission_value(submission, c.field_id), c)
        for c in group.conditions
    ]
    return all(results) if group.logic == "AND" else any(results)


def sort_submissions(submissions: List[FormSubmission], sort: List[SortConfig]) -> List[FormSubmission]:
    """Stable multi-key sort; missing values go last."""
    result = list(submissions)
    for config in reversed(sort):
        present = [s for s in result if _submission_value(s, config.field_id) is not None]
        missing = [s for s in result if _submission_value(s, config.field_id) is None]

        def key(submission, field_id=config.field_id):
            value = _submission_value(submission, field_id)
            number = _number(value)
            return (0, number, "") if number is not None else (1, 0, str(value))

        present.sort(key=key, reverse=config.direction == "desc")
        result = present + missing
    return result


class SubmissionService:
    """Service for form submission operations."""

    # Public side

    @staticmethod
    def get_public_form(db: Session, form_id: int) -> Form:
        form = db.get(Form, form_id)
        if not form or form.status == FormStatus.DRAFT:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Form not found"
            )
        return form

    @staticmethod
    def completed_count(db: Session, form_id: int) -> int:
        return db.query(FormSubmission).filter(
            FormSubmission.form_id == form_id,
            FormSubmission.status == SubmissionStatus.COMPLETED
        ).count()

    @staticmethod
    def check_visibility(form: Form, ctx: Optional[UserContext]) -> None:
        """Enforce the form's ``public``/``team``/``private`` visibility."""
        visibility = form_schema.from_db(form).access_control.visibility
        if visibility == "public":
            return
        if ctx is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Please sign in to access this form"
            )
        if ctx.is_superadmin:
            return
        if ctx.company_id != form.company_id:
            raise _forbidden("This form is only available to team members")
        if visibility == "private" and ctx.role not in EDITOR_ROLES:
            raise _forbidden("This form is private")

    @staticmethod
    def check_respondent(
        form: Form,
        ctx: Optional[UserContext],
        password: Optional[str] = None,
        email: Optional[str] = None
    ) -> None:
        """Check password, allowed domains and sign-in requirements."""
        definition = form_schema.from_db(form)
        access_control = definition.access_control

        if access_control.password and password != access_control.password:
            raise _forbidden("Incorrect form password")

        if definition.settings.require_login and ctx is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Please sign in to submit this form"
            )

        if access_control.allowed_domains:
            address = ctx.email if ctx else email
            domain = address.rsplit("@", 1)[-1].lower() if address and "@" in address else None
            allowed = [d.lower().lstrip("@") for d in access_control.allowed_domains]
            if domain not in allowed:
                raise _forbidden("Submissions are restricted to approved email domains")

    @staticmethod
    def render_public_form(db: Session, form_id: int, ctx: Optional[UserContext]) -> Dict[str, Any]:
        """Render a published form with its availability."""
        form = SubmissionService.get_public_form(db, form_id)
        SubmissionService.check_visibility(form, ctx)

        definition = form_schema.from_db(form)
        can_accept, reason = can_accept_submissions(form, SubmissionService.completed_count(db, form.id))
        rendered = render_form(definition)
        rendered.update({
            "id": form.id,
            "name": form.name,
            "description": form.description,
            "version": form.version,
            "requires_password": bool(definition.access_control.password),
            "availability": {
                "can_accept": can_accept,
                "reason": reason,
                "expiry_status": get_expiry_status(form),
            },
        })
        return rendered

    @staticmethod
    def _ensure_can_accept(db: Session, form: Form) -> None:
        can_accept, reason = can_accept_submissions(form, SubmissionService.completed_count(db, form.id))
        if not can_accept:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=reason
            )

    @staticmethod
    def _validate(form: Form, data: Dict[str, Any]) -> None:
        definition = form_schema.from_db(form)
        visible, required = apply_conditional_logic(definition, data)
        errors = validate_submission_data(definition.fields, data, visible, required)
        if errors:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Please fix the highlighted fields", "errors": errors}
            )

    @staticmethod
    def _ensure_first_completion(
        db: Session,
        form: Form,
        ctx: Optional[UserContext],
        submission_id: Optional[int] = None
    ) -> None:
        """Refuse a second completed submission from the same user unless the form allows it."""
        if ctx is None or form_schema.from_db(form).settings.allow_multiple_submissions:
            return
        q = db.query(FormSubmission).filter(
            FormSubmission.form_id == form.id,
            FormSubmission.submitted_by_id == ctx.user_id,
            FormSubmission.status == SubmissionStatus.COMPLETED
        )
        if submission_id is not None:
            q = q.filter(FormSubmission.id != submission_id)
        if q.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You have already submitted this form"
            )

    @staticmethod
    def refresh_metadata(db: Session, form: Form) -> None:
        """Recount completed responses into the form metadata."""
        definition = form_schema.from_db(form)
        metadata = definition.metadata
        metadata.response_count = SubmissionService.completed_count(db, form.id)
        last = db.query(FormSubmission.submitted_at).filter(
            FormSubmission.form_id == form.id,
            FormSubmission.status == SubmissionStatus.COMPLETED
        ).order_by(FormSubmission.submitted_at.desc()).first()
        metadata.last_submitted_at = last[0] if last else None
        form.form_metadata = metadata.model_dump(mode="json")

    @staticmethod
    def create_submission(
        db: Session,
        form_id: int,
        ctx: Optional[UserContext],
        data: SubmissionCreate,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> FormSubmission:
        """Start a draft or complete a submission on a published form."""
        form = SubmissionService.get_public_form(db, form_id)
        SubmissionService.check_visibility(form, ctx)
        SubmissionService._ensure_can_accept(db, form)
        SubmissionService.check_respondent(form, ctx, data.password, data.email)

        settings = form_schema.from_db(form).settings
        SubmissionService._ensure_first_completion(db, form, ctx)

        completed = data.status == SubmissionStatus.COMPLETED
        if completed:
            SubmissionService._validate(form, data.data)

        now = datetime.utcnow()
        submission = FormSubmission(
            form_id=form.id,
            form_version=form.version,
            company_id=form.company_id,
            data=dict(data.data),
            status=data.status,
            submitted_by_id=ctx.user_id if ctx else None,
            submitted_by_email=ctx.email if ctx else data.email,
            is_anonymous=ctx is None,
            ip_address=ip_address if settings.collect_ip_address else None,
            user_agent=user_agent,
            resume_token=secrets.token_urlsafe(32) if ctx is None else None,
            started_at=now,
            submitted_at=now if completed else None,
            last_saved_at=now,
        )
        db.add(submission)
        db.flush()

        if completed:
            SubmissionService.refresh_metadata(db, form)
        db.commit()
        db.refresh(submission)
        logger.info("Submission %s (%s) created for form %s", submission.id, submission.status, form.id)
        return submission

    @staticmethod
    def continue_submission(
        db: Session,
        form_id: int,
        submission_id: int,
        ctx: Optional[UserContext],
        data: SubmissionUpdate
    ) -> FormSubmission:
        """Save more answers on a draft, optionally completing it."""
        form = SubmissionService.get_public_form(db, form_id)
        submission = db.get(FormSubmission, submission_id)
        if not submission or submission.form_id != form.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Submission not found"
            )
        if submission.submitted_by_id is not None:
            if ctx is None or ctx.user_id != submission.submitted_by_id:
                raise _forbidden("Unauthorized to update this submission")
        elif not (
            submission.resume_token
            and data.resume_token
            and secrets.compare_digest(submission.resume_token, data.resume_token)
        ):
            raise _forbidden("Unauthorized to update this submission")
        if submission.status != SubmissionStatus.DRAFT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only draft submissions can be continued"
            )

        SubmissionService.check_visibility(form, ctx)
        SubmissionService._ensure_can_accept(db, form)
        SubmissionService.check_respondent(form, ctx, data.password, submission.submitted_by_email)

        merged = {**(submission.data or {}), **data.data}
        completing = data.status == SubmissionStatus.COMPLETED
        if completing:
            SubmissionService._ensure_first_completion(db, form, ctx, submission.id)
            SubmissionService._validate(form, merged)

        now = datetime.utcnow()
        submission.data = merged
        submission.last_saved_at = now
        if completing:
            submission.status = SubmissionStatus.COMPLETED
            submission.submitted_at = now
            submission.form_version = form.version
            db.flush()
            SubmissionService.refresh_metadata(db, form)

        db.commit()
        db.refresh(submission)
        return submission

    # Company side

    @staticmethod
    def get_submission(db: Session, submission_id: int, ctx: UserContext, operation: str = "read") -> FormSubmission:
        submission = db.get(FormSubmission, submission_id)
        if not submission:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Submission not found"
            )
        ensure_data_scope(ctx, submission.company_id, operation)
        return submission

    @staticmethod
    def list_submissions(
        db: Session,
        form: Form,
        query: SubmissionFilterQuery
    ) -> Dict[str, Any]:
        """Filter, sort and page a form's submissions."""
        q = db.query(FormSubmission).filter(FormSubmission.form_id == form.id)
        if query.status:
            q = q.filter(FormSubmission.status == query.status)
        if query.date_from:
            q = q.filter(FormSubmission.started_at >= query.date_from)
        if query.date_to:
            q = q.filter(FormSubmission.started_at <= query.date_to)

        submissions = q.order_by(FormSubmission.started_at.desc(), FormSubmission.id.desc()).all()
        if query.filters:
            submissions = [s for s in submissions if all(matches_group(s, g) for g in query.filters)]
        if query.sort:
            submissions = sort_submissions(submissions, query.sort)

        return {
            "items": submissions[query.offset:query.offset + query.limit],
            "total": len(submissions),
            "limit": query.limit,
            "offset": query.offset,
        }

    @staticmethod
    def update_submission(
        db: Session,
        submission_id: int,
        ctx: UserContext,
        data: SubmissionUpdate
    ) -> FormSubmission:
        """Merge new answers into a submission."""
        submission = SubmissionService.get_submission(db, submission_id, ctx, "write")
        SubmissionService.snapshot(db, submission, ctx)
        submission.data = {**(submission.data or {}), **data.data}
        submission.last_saved_at = datetime.utcnow()

        if data.status and data.status != submission.status:
            submission.status = data.status
            submission.submitted_at = datetime.utcnow() if data.status == SubmissionStatus.COMPLETED else None
            db.flush()
            SubmissionService.refresh_metadata(db, submission.form)

        AuditService.record(
            db,
            action="submission_updated",
            resource_type="submission",
            resource_id=submission.id,
            user_id=ctx.user_id,
            company_id=submission.company_id,
            details={"fields": sorted(data.data.keys())},
        )
        db.commit()
        db.refresh(submission)
        return submission

    @staticmethod
    def snapshot(db: Session, submission: FormSubmission, ctx: UserContext) -> SubmissionVersion:
        """Keep the current answers as the next history entry before they change."""
        latest = db.query(func.max(SubmissionVersion.version)).filter(
            SubmissionVersion.submission_id == submission.id
        ).scalar()
        version = SubmissionVersion(
            submission_id=submission.id,
            company_id=submission.company_id,
            version=(latest or 0) + 1,
            data=dict(submission.data or {}),
            status=submission.status,
            changed_by_id=ctx.user_id,
        )
        db.add(version)
        return version

    @staticmethod
    def list_versions(db: Session, submission: FormSubmission) -> List[SubmissionVersion]:
        return db.query(SubmissionVersion).filter(
            SubmissionVersion.submission_id == submission.id
        ).order_by(SubmissionVersion.version.desc()).all()

    @staticmethod
    def get_version(db: Session, submission: FormSubmission, version: int) -> SubmissionVersion:
        entry = db.query(SubmissionVersion).filter(
            SubmissionVersion.submission_id == submission.id,
            SubmissionVersion.version == version
        ).first()
        if not entry:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Version not found"
            )
        return entry

    @staticmethod
    def restore_version(db: Session, submission_id: int, version: int, ctx: UserContext) -> FormSubmission:
        """Replace the answers with an earlier version, keeping the current ones in history."""
        submission = SubmissionService.get_submission(db, submission_id, ctx, "write")
        entry = SubmissionService.get_version(db, submission, version)
        SubmissionService.snapshot(db, submission, ctx)

        submission.data = dict(entry.data or {})
        submission.last_saved_at = datetime.utcnow()
        AuditService.record(
            db,
            action="submission_restored",
            resource_type="submission",
            resource_id=submission.id,
            user_id=ctx.user_id,
            company_id=submission.company_id,
            details={"version": version},
        )
        db.commit()
        db.refresh(submission)
        return submission

    @staticmethod
    def bulk_update_status(
        db: Session,
        form: Form,
        submission_ids: List[int],
        new_status: SubmissionStatus,
        ctx: UserContext
    ) -> int:
        """Move several submissions of one form to ``new_status``. Returns the number changed."""
        ensure_data_scope(ctx, form.company_id, "write")
        submissions = db.query(FormSubmission).filter(
            FormSubmission.form_id == form.id,
            FormSubmission.id.in_(submission_ids)
        ).all()

        now = datetime.utcnow()
        changed = []
        for submission in submissions:
            if submission.status == new_status:
                continue
            SubmissionService.snapshot(db, submission, ctx)
            submission.status = new_status
            submission.last_saved_at = now
            if new_status == SubmissionStatus.COMPLETED:
                submission.submitted_at = submission.submitted_at or now
            else:
                submission.submitted_at = None
            changed.append(submission.id)

        AuditService.record(
            db,
            action="submissions_bulk_status_updated",
            resource_type="form",
            resource_id=form.id,
            user_id=ctx.user_id,
            company_id=form.company_id,
            details={"submission_ids": changed, "status": new_status.value},
        )
        db.flush()
        SubmissionService.refresh_metadata(db, form)
        db.commit()
        logger.info("Set %s submissions of form %s to %s", len(changed), form.id, new_status)
        return len(changed)

    @staticmethod
    def delete_submission(db: Session, submission_id: int, ctx: UserContext) -> None:
        submission = SubmissionService.get_submission(db, submission_id, ctx, "delete")
        form = submission.form

        AuditService.record(
            db,
            action="submission_deleted",
            resource_type="submission",
            resource_id=submission.id,
            user_id=ctx.user_id,
            company_id=submission.company_id,
            details={"form_id": submission.form_id},
        )
        db.delete(submission)
        db.flush()
        SubmissionService.refresh_metadata(db, form)
        db.commit()

    @staticmethod
    def bulk_delete(db: Session, form: Form, submission_ids: List[int], ctx: UserContext) -> int:
        """Delete several submissions of one form. Returns the number deleted."""
        ensure_data_scope(ctx, form.company_id, "delete")
        submissions = db.query(FormSubmission).filter(
            FormSubmission.form_id == form.id,
            FormSubmission.id.in_(submission_ids)
        ).all()
        for submission in submissions:
            db.delete(submission)

        AuditService.record(
            db,
            action="submissions_bulk_deleted",
            resource_type="form",
            resource_id=form.id,
            user_id=ctx.user_id,
            company_id=form.company_id,
            details={"submission_ids": [s.id for s in submissions]},
        )
        db.flush()
        SubmissionService.refresh_metadata(db, form)
        db.commit()
        return len(submissions)
