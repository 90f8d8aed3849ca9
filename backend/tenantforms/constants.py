"""RBAC roles, job titles and other shared constants."""

from typing import Dict, List, Optional

# Permission levels inside a company. Not to be confused with job titles,
# which are display-only.
OWNER = "owner"
ADMIN = "admin"
EDITOR = "editor"
VIEWER = "viewer"

RBAC_ROLES = [OWNER, ADMIN, EDITOR, VIEWER]

# Higher index = more permissions
ROLE_HIERARCHY = [VIEWER, EDITOR, ADMIN, OWNER]

ROLE_DESCRIPTIONS: Dict[str, Dict[str, str]] = {
    OWNER: {
        "label": "Owner",
        "description": "Full control over the company and all resources",
    },
    ADMIN: {
        "label": "Admin",
        "description": "Manage users, forms, and data",
    },
    EDITOR: {
        "label": "Editor",
        "description": "Create and edit data and forms",
    },
    VIEWER: {
        "label": "Viewer",
        "description": "Read-only access to data",
    },
}

MANAGER_ROLES = [OWNER, ADMIN]
EDITOR_ROLES = [OWNER, ADMIN, EDITOR]
ALL_ROLES = [OWNER, ADMIN, EDITOR, VIEWER]


def is_valid_rbac_role(role: Optional[str]) -> bool:
    return role in RBAC_ROLES


def has_minimum_role(user_role: Optional[str], required_role: str) -> bool:
    """Check if a role is at least as strong as ``required_role``."""
    if not is_valid_rbac_role(user_role) or not is_valid_rbac_role(required_role):
        return False
    return ROLE_HIERARCHY.index(user_role) >= ROLE_HIERARCHY.index(required_role)


JOB_TITLES: List[Dict[str, str]] = [
    {"value": "ceo", "label": "CEO (Chief Executive Officer)"},
    {"value": "cto", "label": "CTO (Chief Technology Officer)"},
    {"value": "cfo", "label": "CFO (Chief Financial Officer)"},
    {"value": "coo", "label": "COO (Chief Operating Officer)"},
    {"value": "founder", "label": "Founder"},
    {"value": "co-founder", "label": "Co-Founder"},
    {"value": "director", "label": "Director"},
    {"value": "manager", "label": "Manager"},
    {"value": "team-lead", "label": "Team Lead"},
    {"value": "senior-developer", "label": "Senior Developer"},
    {"value": "developer", "label": "Developer"},
    {"value": "analyst", "label": "Analyst"},
    {"value": "consultant", "label": "Consultant"},
    {"value": "administrator", "label": "Administrator"},
    {"value": "other", "label": "Other"},
]


def get_job_title_label(value: str) -> str:
    for title in JOB_TITLES:
        if title["value"] == value:
            return title["label"]
    return value


def is_valid_job_title(value: str) -> bool:
    return any(title["value"] == value for title in JOB_TITLES)


# Onboarding wizard
ONBOARDING_STEPS = [
    {"step": 1, "title": "Account", "description": "Create your account"},
    {"step": 2, "title": "Company Info", "description": "Basic company information"},
    {"step": 3, "title": "Address", "description": "Company address"},
    {"step": 4, "title": "Branding", "description": "Logo and tax information"},
    {"step": 5, "title": "Documents", "description": "Verification documents"},
    {"step": 6, "title": "Review", "description": "Review and submit"},
]
FIRST_DATA_STEP = 2
LAST_STEP = 6

# File buckets
DOCUMENTS_BUCKET = "documents"
IMAGES_BUCKET = "images"

ALLOWED_CONTENT_TYPES = {
    DOCUMENTS_BUCKET: {
        "application/pdf",
        "image/png",
        "image/jpeg",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    },
    IMAGES_BUCKET: {
        "image/png",
        "image/jpeg",
        "image/gif",
        "image/webp",
    },
}
