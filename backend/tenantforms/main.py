"""FastAPI application entry point."""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tenantforms import __version__
from tenantforms.config import get_settings
from tenantforms.errors import register_exception_handlers
from tenantforms.routers import (
    admin,
    auth,
    files,
    forms,
    imports,
    invitations,
    onboarding,
    org,
    public,
    submissions,
    users,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title="TenantForms",
    description="Company onboarding, team management and dynamic forms for multiple tenants",
    version=__version__,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Redirect-To"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(onboarding.router, prefix="/api/onboarding", tags=["Onboarding"])
app.include_router(files.router, prefix="/api/files", tags=["Files"])
app.include_router(admin.router, prefix="/api/admin", tags=["Super Admin"])
app.include_router(org.router, prefix="/api/org/{org_id}", tags=["Company"])
app.include_router(forms.router, prefix="/api/org/{org_id}/forms", tags=["Forms"])
app.include_router(
    submissions.router,
    prefix="/api/org/{org_id}/forms/{form_id}/submissions",
    tags=["Submissions"],
)
app.include_router(imports.router, prefix="/api/org/{org_id}", tags=["Imports"])
app.include_router(invitations.router, prefix="/api/invitations", tags=["Invitations"])
app.include_router(public.router, prefix="/api/public", tags=["Public Forms"])

# Ensure storage directories exist
os.makedirs(settings.upload_dir, exist_ok=True)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "tenantforms-backend"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "TenantForms API",
        "docs": "/docs",
        "health": "/health",
    }
