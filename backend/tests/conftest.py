"""Point settings at throwaway storage before the application is imported."""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="tenantforms-uploads-")
os.environ["SMTP_HOST"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
