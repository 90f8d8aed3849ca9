"""Seed script to create initial data for development/demo."""

import sys
import os
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tenantforms.database import SessionLocal, engine, Base
from tenantforms.models.company import Company, CompanyStatus
from tenantforms.models.form import Form, FormStatus
from tenantforms.models.user import User, MemberRole
from tenantforms.schemas.form import FormDefinition, FormField, FormSettings
from tenantforms.services import form_schema
from tenantforms.services.auth import AuthService

DEMO_COMPANY = {
    "company_name": "Demo Industries",
    "email": "owner@demo.example.com",
    "phone": "+1 555 010 1000",
    "website": "https://demo.example.com",
    "industry": "technology",
    "size": "11-50",
    "description": "Sample tenant created by the seed script.",
    "street": "100 Main Street",
    "city": "Portland",
    "state": "Oregon",
    "country": "United States",
    "zip_code": "97201",
    "tax_id": "DEMO-0001",
}

USERS = [
    # (email, password, full name, role)
    ("owner@demo.example.com", "owner123", "Olivia Owner", MemberRole.OWNER),
    ("editor@demo.example.com", "editor123", "Eddie Editor", MemberRole.EDITOR),
    ("viewer@demo.example.com", "viewer123", "Vera Viewer", MemberRole.VIEWER),
]

FEEDBACK_FIELDS = [
    {"id": "name", "type": "short_text", "label": "Your name", "required": True, "order": 0},
    {
        "id": "email",
        "type": "email",
        "label": "Email",
        "required": True,
        "order": 1,
        "validation": [{"type": "email_format"}],
    },
    {"id": "score", "type": "rating", "label": "How likely are you to recommend us?", "max_rating": 5, "order": 2},
    {
        "id": "topics",
        "type": "multi_select",
        "label": "What did you use?",
        "order": 3,
        "options": [
            {"id": "opt-forms", "label": "Forms", "value": "forms"},
            {"id": "opt-teams", "label": "Team management", "value": "teams"},
            {"id": "opt-export", "label": "Exports", "value": "export"},
        ],
    },
    {"id": "comments", "type": "long_text", "label": "Anything else?", "order": 4},
]


def get_or_create_user(db, email, password, full_name, **kwargs):
    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(
            email=email,
            hashed_password=AuthService.get_password_hash(password),
            full_name=full_name,
            **kwargs
        )
        db.add(user)
        db.flush()
        print(f"  Created user: {email} / {password}")
    return user


def seed_database():
    """Create initial seed data."""
    db = SessionLocal()

    try:
        print("Creating users...")
        get_or_create_user(db, "admin@example.com", "admin123", "Platform Admin", is_superadmin=True)
        owner = get_or_create_user(db, *USERS[0][:3])
        db.commit()

        print("\nCreating demo company...")
        company = db.query(Company).filter(Company.company_name == DEMO_COMPANY["company_name"]).first()
        if not company:
            company = Company(
                **DEMO_COMPANY,
                certification_file_ids=[],
                status=CompanyStatus.ACTIVE,
                current_step=6,
                completed_steps=[1, 2, 3, 4, 5, 6],
                created_by_id=owner.id,
                submitted_at=datetime.utcnow(),
                approved_at=datetime.utcnow(),
            )
            db.add(company)
            db.flush()
            print(f"  Created company: {company.company_name}")

        for email, password, full_name, role in USERS:
            member = get_or_create_user(db, email, password, full_name)
            member.company_id = company.id
            member.role = role
        db.commit()

        print("\nCreating forms...")
        form = db.query(Form).filter(
            Form.company_id == company.id,
            Form.name == "Customer Feedback"
        ).first()
        if not form:
            fields = [FormField.model_validate(f) for f in FEEDBACK_FIELDS]
            definition = FormDefinition(
                fields=fields,
                steps=[{"id": "step-1", "title": "Feedback", "fields": [f.id for f in fields], "order": 1}],
                settings=FormSettings(require_login=False, allow_anonymous=True, is_public=True),
            )
            definition.metadata = form_schema.compute_metadata(definition.fields, definition.steps)
            form = Form(
                company_id=company.id,
                name="Customer Feedback",
                description="Tell us how we are doing.",
                status=FormStatus.PUBLISHED,
                version=1,
                created_by_id=owner.id,
                published_at=datetime.utcnow(),
                **form_schema.to_db(definition),
            )
            db.add(form)
            print("  Created form: Customer Feedback")
        db.commit()

        print("\nSeed data created successfully!")
        print("\nYou can now log in with:")
        print("  Super admin: admin@example.com / admin123")
        for email, password, _, role in USERS:
            print(f"  {role.value.title():<12} {email} / {password}")
        print(f"\nPublic form: /api/public/forms/{form.id}")

    except Exception as e:
        print(f"Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    # Create tables
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    # Seed data
    seed_database()
