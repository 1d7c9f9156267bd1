import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from talentmatch.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    HealthCheckMiddleware,
    PerformanceMiddleware,
    RequestLoggingMiddleware,
)
from talentmatch.models.models import CandidateRecord
from talentmatch.utils.exceptions import DatabaseError, ExtractionFailed, NotFoundError


@pytest.fixture
def test_app():
    app = FastAPI()
    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_middleware(PerformanceMiddleware, slow_request_threshold=30.0)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(HealthCheckMiddleware)

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Profile p-1 not found", resource="profiles")

    @app.get("/failed")
    async def failed():
        raise ExtractionFailed("Failed to analyze CV. No valid responses received from any text chunks.")

    @app.get("/db")
    async def db():
        raise DatabaseError("Database error in insert_profile", operation="insert_profile")

    @app.get("/invalid-record")
    async def invalid_record():
        CandidateRecord(technologies="not-a-list")

    @app.get("/http")
    async def http():
        raise HTTPException(status_code=409, detail="Conflict")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


class TestExceptionHandlerMiddleware:
    """Test cases for the global error handling middleware"""

    def test_success_carries_request_id_and_timing(self, client):
        response = client.get("/ok")

        assert response.status_code == 200
        assert response.headers["X-Request-ID"]
        assert float(response.headers["X-Processing-Time"]) >= 0

    @pytest.mark.parametrize("path,status,code", [
        ("/missing", 404, "NOT_FOUND"),
        ("/failed", 422, "EXTRACTION_FAILED"),
        ("/db", 500, "DATABASE_ERROR"),
    ])
    def test_custom_exceptions_are_mapped(self, client, path, status, code):
        response = client.get(path)

        assert response.status_code == status
        body = response.json()
        assert body["success"] is False
        assert body["error"]["error_code"] == code
        assert body["request_id"] == response.headers["X-Request-ID"]

    def test_model_validation_error_is_400(self, client):
        response = client.get("/invalid-record")

        assert response.status_code == 400
        assert response.json()["error"] == "Data validation failed"

    def test_http_exception_passes_through(self, client):
        response = client.get("/http")

        assert response.status_code == 409
        assert response.json()["detail"] == "Conflict"

    def test_unhandled_error_hides_internals(self, client):
        response = client.get("/boom")

        assert response.status_code == 500
        assert "secret internals" not in response.text
        assert response.json()["error"] == "Internal server error"


class TestHealthCheckMiddleware:

    @pytest.mark.parametrize("path", ["/healthz", "/ping"])
    def test_health_paths(self, client, path):
        response = client.get(path)
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
