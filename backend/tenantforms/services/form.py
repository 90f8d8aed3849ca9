"""Form service for company-scoped CRUD, publishing and cloning."""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from tenantforms.models.company import Company, CompanyStatus
from tenantforms.models.form import Form, FormStatus, FormSubmission, SubmissionStatus
from tenantforms.schemas.form import FormCreate, FormUpdate, FormMetadata, FormDefinition
from tenantforms.services import form_schema
from tenantforms.services.access import UserContext
from tenantforms.services.audit import AuditService
from tenantforms.services.form_renderer import render_form
from tenantforms.services.form_validation import (
    can_accept_submissions,
    get_expiry_status,
    validate_form_for_publishing,
)

logger = logging.getLogger(__name__)


class FormService:
    """Service for form operations."""

    @staticmethod
    def _require_active_company(db: Session, company_id: int, action: str) -> Company:
        company = db.get(Company, company_id)
        if not company:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Company not found"
            )
        if company.status != CompanyStatus.ACTIVE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Your company must be active to {action} forms"
            )
        return company

    @staticmethod
    def _audit(db: Session, form: Form, ctx: UserContext, action: str, details: Optional[Dict[str, Any]] = None):
        AuditService.record(
            db,
            action=action,
            resource_type="form",
            resource_id=form.id,
            user_id=ctx.user_id,
            company_id=form.company_id,
            details=details,
        )

    @staticmethod
    def get_form(db: Session, company_id: int, form_id: int) -> Form:
        """Get a form that belongs to ``company_id``."""
        form = db.get(Form, form_id)
        if not form or form.company_id != company_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Form not found"
            )
        return form

    @staticmethod
    def list_forms(
        db: Session,
        company_id: int,
        status_filter: Optional[FormStatus] = None
    ) -> List[Form]:
        query = db.query(Form).filter(Form.company_id == company_id)
        if status_filter:
            query = query.filter(Form.status == status_filter)
        return query.order_by(Form.created_at.desc(), Form.id.desc()).all()

    @staticmethod
    def create_form(db: Session, company_id: int, ctx: UserContext, data: FormCreate) -> Form:
        """Create a draft form for an active company."""
        FormService._require_active_company(db, company_id, "create")

        definition = FormDefinition(
            fields=data.fields,
            steps=data.steps or form_schema.default_steps(),
            conditional_logic=data.conditional_logic,
        )
        if data.settings:
            definition.settings = data.settings
        if data.theme:
            definition.theme = data.theme
        if data.access_control:
            definition.access_control = data.access_control
        definition.metadata = form_schema.compute_metadata(definition.fields, definition.steps)

        form = Form(
            company_id=company_id,
            name=data.name,
            description=data.description,
            status=FormStatus.DRAFT,
            version=1,
            is_template=data.is_template,
            template_category=data.template_category,
            created_by_id=ctx.user_id,
            updated_by_id=ctx.user_id,
            **form_schema.to_db(definition),
        )
        db.add(form)
        db.flush()

        FormService._audit(db, form, ctx, "form_created", {"name": form.name})
        db.commit()
        db.refresh(form)
        logger.info("Form %s created in company %s by %s", form.id, company_id, ctx.user_id)
        return form

    @staticmethod
    def update_form(db: Session, company_id: int, form_id: int, ctx: UserContext, data: FormUpdate) -> Form:
        form = FormService.get_form(db, company_id, form_id)
        changes = data.model_dump(exclude_unset=True)

        if "name" in changes:
            form.name = data.name
        if "description" in changes:
            form.description = data.description
        if "template_category" in changes:
            form.template_category = data.template_category

        definition = form_schema.from_db(form)
        for part in ("fields", "steps", "conditional_logic", "settings", "theme", "access_control"):
            if changes.get(part) is not None:
                setattr(definition, part, getattr(data, part))
        if not definition.steps:
            definition.steps = form_schema.default_steps()
        definition.metadata = form_schema.compute_metadata(
            definition.fields, definition.steps, definition.metadata
        )

        # JSON columns are reassigned so the change is tracked
        for column, value in form_schema.to_db(definition).items():
            setattr(form, column, value)
        form.updated_by_id = ctx.user_id

        FormService._audit(db, form, ctx, "form_updated", {"fields": sorted(changes.keys())})
        db.commit()
        db.refresh(form)
        return form

    @staticmethod
    def publish_form(db: Session, company_id: int, form_id: int, ctx: UserContext) -> Form:
        """Publish a form. Republishing bumps the version."""
        form = FormService.get_form(db, company_id, form_id)

        is_valid, errors = validate_form_for_publishing(form)
        if not is_valid:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="; ".join(errors)
            )

        if form.published_at is not None:
            form.version = (form.version or 1) + 1
        form.status = FormStatus.PUBLISHED
        form.published_at = datetime.utcnow()
        form.updated_by_id = ctx.user_id

        FormService._audit(db, form, ctx, "form_published", {"version": form.version})
        db.commit()
        db.refresh(form)
        logger.info("Form %s published as version %s", form.id, form.version)
        return form

    @staticmethod
    def archive_form(db: Session, company_id: int, form_id: int, ctx: UserContext) -> Form:
        form = FormService.get_form(db, company_id, form_id)
        if form.status == FormStatus.ARCHIVED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Form is already archived"
            )
        form.status = FormStatus.ARCHIVED
        form.updated_by_id = ctx.user_id

        FormService._audit(db, form, ctx, "form_archived")
        db.commit()
        db.refresh(form)
        return form

    @staticmethod
    def clone_form(
        db: Session,
        company_id: int,
        form_id: int,
        ctx: UserContext,
        new_name: Optional[str] = None
    ) -> Form:
        """Copy a form as a new draft at version 1."""
        original = FormService.get_form(db, company_id, form_id)
        FormService._require_active_company(db, company_id, "clone")

        definition = form_schema.from_db(original)
        definition.metadata = form_schema.compute_metadata(
            definition.fields, definition.steps, FormMetadata()
        )

        clone = Form(
            company_id=company_id,
            name=new_name or f"{original.name} (Copy)",
            description=original.description,
            status=FormStatus.DRAFT,
            version=1,
            is_template=False,
            template_category=original.template_category,
            created_by_id=ctx.user_id,
            updated_by_id=ctx.user_id,
            **form_schema.to_db(definition),
        )
        db.add(clone)
        db.flush()

        FormService._audit(db, clone, ctx, "form_cloned", {"source_form_id": original.id})
        db.commit()
        db.refresh(clone)
        return clone

    @staticmethod
    def delete_form(db: Session, company_id: int, form_id: int, ctx: UserContext) -> None:
        """Delete a form together with its submissions."""
        form = FormService.get_form(db, company_id, form_id)
        submission_count = len(form.submissions)

        FormService._audit(db, form, ctx, "form_deleted", {
            "name": form.name,
            "submissions": submission_count,
        })
        db.delete(form)
        db.commit()
        logger.info("Form %s deleted with %s submissions", form_id, submission_count)

    @staticmethod
    def get_availability(db: Session, form: Form) -> Dict[str, Any]:
        completed = db.query(FormSubmission).filter(
            FormSubmission.form_id == form.id,
            FormSubmission.status == SubmissionStatus.COMPLETED
        ).count()
        can_accept, reason = can_accept_submissions(form, completed)
        return {
            "can_accept": can_accept,
            "reason": reason,
            "expiry_status": get_expiry_status(form),
        }

    @staticmethod
    def preview_form(
        db: Session,
        company_id: int,
        form_id: int,
        answers: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Render a form of any status as respondents would see it."""
        form = FormService.get_form(db, company_id, form_id)
        rendered = render_form(form_schema.from_db(form), answers)
        rendered.update({
            "id": form.id,
            "name": form.name,
            "description": form.description,
            "status": form.status,
            "version": form.version,
        })
        return rendered
