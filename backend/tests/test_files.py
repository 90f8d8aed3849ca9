import asyncio
import io
import os
import unittest
from unittest import mock

from fastapi import HTTPException, UploadFile

from tests.base import ApiTestCase
from tenantforms.models.file import StoredFile
from tenantforms.models.user import MemberRole
from tenantforms.services.files import read_upload

PDF_BYTES = b"%PDF-1.4 sample document"


class FileApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner, self.company = self.create_owner_with_company()
        self.headers = self.auth(self.owner)

    def upload(self, name="license.pdf", content=PDF_BYTES, content_type="application/pdf",
               bucket="documents", headers=None):
        return self.client.post(
            f"/api/files/{bucket}",
            files={"file": (name, content, content_type)},
            headers=headers or self.headers,
        )

    def test_upload_document(self):
        response = self.upload(name="my license (final).pdf")
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["bucket"], "documents")
        self.assertEqual(body["original_name"], "my license (final).pdf")
        self.assertEqual(body["size"], len(PDF_BYTES))

        stored = self.db.get(StoredFile, body["id"])
        self.assertEqual(stored.company_id, self.company.id)
        self.assertTrue(stored.stored_path.startswith(os.path.join(self.upload_dir, "documents")))
        self.assertTrue(stored.stored_path.endswith("my_license__final_.pdf"))
        with open(stored.stored_path, "rb") as handle:
            self.assertEqual(handle.read(), PDF_BYTES)

    def test_rejected_uploads(self):
        response = self.upload(name="notes.txt", content=b"hello", content_type="text/plain")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "File type text/plain is not allowed")

        response = self.upload(name="logo.pdf", bucket="images")
        self.assertEqual(response.status_code, 400)

        response = self.upload(content=b"")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "File is empty")

        limit = self.settings.max_upload_size
        self.settings.max_upload_size = 4
        try:
            response = self.upload()
        finally:
            self.settings.max_upload_size = limit
        self.assertEqual(response.status_code, 400)

    def test_storage_failure(self):
        blocker = os.path.join(self.upload_dir, "blocker")
        with open(blocker, "w") as handle:
            handle.write("not a directory")
        self.settings.upload_dir = blocker

        response = self.upload()
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json(), {"detail": "Could not store the uploaded file", "code": "STORAGE_ERROR"})
        self.assertEqual(self.db.query(StoredFile).count(), 0)

    def test_upload_requires_sign_in(self):
        response = self.client.post(
            "/api/files/documents",
            files={"file": ("license.pdf", PDF_BYTES, "application/pdf")},
        )
        self.assertEqual(response.status_code, 401)

    def test_download_permissions(self):
        file_id = self.upload().json()["id"]

        response = self.client.get(f"/api/files/{file_id}/download", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, PDF_BYTES)

        teammate = self.add_member(self.company, MemberRole.VIEWER, "viewer@acme.io")
        response = self.client.get(f"/api/files/{file_id}", headers=self.auth(teammate))
        self.assertEqual(response.status_code, 200)

        stranger = self.create_user("stranger@example.com")
        response = self.client.get(f"/api/files/{file_id}/download", headers=self.auth(stranger))
        self.assertEqual(response.status_code, 403)

        admin = self.create_superadmin()
        response = self.client.get(f"/api/files/{file_id}/download", headers=self.auth(admin))
        self.assertEqual(response.status_code, 200)

    def test_missing_file(self):
        response = self.client.get("/api/files/999", headers=self.headers)
        self.assertEqual(response.status_code, 404)

        file_id = self.upload().json()["id"]
        os.remove(self.db.get(StoredFile, file_id).stored_path)
        response = self.client.get(f"/api/files/{file_id}/download", headers=self.headers)
        self.assertEqual(response.status_code, 404)

    def test_delete(self):
        file_id = self.upload().json()["id"]
        path = self.db.get(StoredFile, file_id).stored_path

        teammate = self.add_member(self.company, MemberRole.ADMIN, "admin@acme.io")
        response = self.client.delete(f"/api/files/{file_id}", headers=self.auth(teammate))
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"/api/files/{file_id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(os.path.exists(path))
        self.assertEqual(self.client.get(f"/api/files/{file_id}", headers=self.headers).status_code, 404)


class ReadUploadTests(unittest.TestCase):
    def test_reads_whole_file_under_the_limit(self):
        upload = UploadFile(file=io.BytesIO(PDF_BYTES), filename="license.pdf")
        self.assertEqual(asyncio.run(read_upload(upload, 1024)), PDF_BYTES)

    def test_stops_reading_once_over_the_limit(self):
        buffer = io.BytesIO(b"x" * 100)
        upload = UploadFile(file=buffer, filename="big.pdf")
        with mock.patch("tenantforms.services.files.CHUNK_SIZE", 8):
            with self.assertRaises(HTTPException) as caught:
                asyncio.run(read_upload(upload, 10))
        self.assertEqual(caught.exception.status_code, 400)
        self.assertEqual(buffer.tell(), 16)


if __name__ == "__main__":
    unittest.main()
