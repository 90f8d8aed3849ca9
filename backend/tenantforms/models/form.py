"""Form definition and submission models."""

from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum as PyEnum

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, JSON, Enum, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantforms.database import Base


class FormStatus(str, PyEnum):
    """Form lifecycle states."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

    def __str__(self) -> str:
        return self.value


class SubmissionStatus(str, PyEnum):
    """Submission states."""
    DRAFT = "draft"
    COMPLETED = "completed"

    def __str__(self) -> str:
        return self.value


class Form(Base):
    """
    Form is a company-owned, JSON-defined form.

    The field, step and conditional logic arrays are stored as JSON and
    interpreted by the form schema helpers and renderer.
    """

    __tablename__ = "forms"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[FormStatus] = mapped_column(
        Enum(FormStatus, values_callable=lambda x: [e.value for e in x]),
        default=FormStatus.DRAFT,
        nullable=False,
        index=True
    )
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_template: Mapped[bool] = mapped_column(Boolean, default=False)
    template_category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Definition
    fields: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    steps: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    conditional_logic: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    settings: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    theme: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    access_control: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    # "metadata" is reserved on declarative classes
    form_metadata: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict
    )

    created_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    updated_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="forms")
    created_by: Mapped["User"] = relationship("User", foreign_keys=[created_by_id])
    submissions: Mapped[List["FormSubmission"]] = relationship(
        "FormSubmission",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="FormSubmission.id"
    )

    def __repr__(self) -> str:
        return f"<Form(id={self.id}, name='{self.name}', status='{self.status}')>"


class FormSubmission(Base):
    """
    FormSubmission holds one respondent's answers.

    ``data`` maps field ids to values. Drafts can be continued until they
    are completed.
    """

    __tablename__ = "form_submissions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    form_id: Mapped[int] = mapped_column(
        ForeignKey("forms.id"),
        nullable=False,
        index=True
    )
    form_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"),
        nullable=False,
        index=True
    )

    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus, values_callable=lambda x: [e.value for e in x]),
        default=SubmissionStatus.DRAFT,
        nullable=False,
        index=True
    )

    # Respondent
    submitted_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        index=True
    )
    submitted_by_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    # Handed to anonymous respondents so only they can continue the draft
    resume_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_saved_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    # Relationships
    form: Mapped["Form"] = relationship("Form", back_populates="submissions")
    submitted_by: Mapped[Optional["User"]] = relationship("User")
    versions: Mapped[List["SubmissionVersion"]] = relationship(
        "SubmissionVersion",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionVersion.version.desc()"
    )

    def __repr__(self) -> str:
        return f"<FormSubmission(id={self.id}, form_id={self.form_id}, status='{self.status}')>"


class SubmissionVersion(Base):
    """Snapshot of a submission's answers taken before an edit."""

    __tablename__ = "submission_versions"
    __table_args__ = (UniqueConstraint("submission_id", "version", name="uq_submission_versions_version"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    submission_id: Mapped[int] = mapped_column(
        ForeignKey("form_submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"),
        nullable=False,
        index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False
    )
    changed_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    submission: Mapped["FormSubmission"] = relationship("FormSubmission", back_populates="versions")

    def __repr__(self) -> str:
        return f"<SubmissionVersion(submission_id={self.submission_id}, version={self.version})>"
