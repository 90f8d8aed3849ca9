import unittest

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from tenantforms.errors import ServiceError, ServiceErrorHandler, register_exception_handlers


class ServiceErrorHandlerTests(unittest.TestCase):
    def test_categories(self):
        cases = [
            (Exception("Document not found"), "DOCUMENT_NOT_FOUND", 404, "Resource not found"),
            (Exception("Unauthorized token"), "UNAUTHORIZED", 401, "Unauthorized access"),
            (Exception("FORBIDDEN by policy"), "FORBIDDEN", 403, "Forbidden access"),
            (Exception("invalid query: bad column"), "INVALID_QUERY", 400, "Invalid query parameters"),
        ]
        for error, code, status_code, message in cases:
            handled = ServiceErrorHandler.handle(error)
            self.assertEqual((handled.code, handled.status_code, handled.message), (code, status_code, message))

    def test_unknown_errors_are_internal(self):
        handled = ServiceErrorHandler.handle(ValueError("disk full"))
        self.assertEqual(handled.code, "INTERNAL_ERROR")
        self.assertEqual(handled.status_code, 500)
        self.assertEqual(handled.message, "Internal server error, (disk full)")

    def test_service_errors_pass_through(self):
        error = ServiceError("Quota exceeded", "QUOTA", 429)
        self.assertIs(ServiceErrorHandler.handle(error), error)


class ExceptionHandlerTests(unittest.TestCase):
    def setUp(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/service")
        async def service_failure():
            raise ServiceError("Storage unavailable", "STORAGE_DOWN", 503)

        @app.get("/database")
        async def database_failure():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        @app.get("/missing")
        async def missing_row():
            raise SQLAlchemyError("Row not found")

        self.client = TestClient(app)

    def test_service_error(self):
        response = self.client.get("/service")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json(), {"detail": "Storage unavailable", "code": "STORAGE_DOWN"})

    def test_database_errors(self):
        response = self.client.get("/database")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["code"], "INTERNAL_ERROR")

        response = self.client.get("/missing")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"detail": "Resource not found", "code": "DOCUMENT_NOT_FOUND"})


if __name__ == "__main__":
    unittest.main()
