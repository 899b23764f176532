"""Tests for global exception handlers.

Validates that governor errors map to the right HTTP status codes with a
consistent error envelope, and that unexpected errors never leak details.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from governor.core.errors import (
    AdmissionDeniedAppError,
    AppError,
    AuthenticationAppError,
    RemoteStoreAppError,
    ValidationAppError,
)
from governor.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


def _body(response) -> dict:
    raw = response.body if isinstance(response.body, bytes) else bytes(response.body)
    return json.loads(raw.decode())


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        ("error", "expected_status"),
        [
            (ValidationAppError(code="datastore_unknown_provider", message="bad"), 400),
            (AuthenticationAppError(code="invalid_api_key", message="nope"), 403),
            (AdmissionDeniedAppError(code="admission_denied", message="slow down"), 429),
            (RemoteStoreAppError(code="PGRST301", message="JWT expired"), 502),
        ],
    )
    def test_error_maps_to_status(
        self,
        client: TestClient,
        app_with_handlers: FastAPI,
        error: AppError,
        expected_status: int,
    ) -> None:
        @app_with_handlers.get("/boom")
        async def boom():
            raise error

        response = client.get("/boom")

        assert response.status_code == expected_status
        data = response.json()
        assert data["error"]["code"] == error.code
        assert data["error"]["message"] == error.message
        assert "request_id" in data["error"]

    def test_remote_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        """Details from the store adapter reach the client."""

        @app_with_handlers.get("/remote")
        async def remote():
            raise RemoteStoreAppError(
                code="INSUFFICIENT_RESOURCES",
                message="too many connections",
                details={"http_status": 503, "provider": "postgrest"},
            )

        response = client.get("/remote")

        assert response.status_code == 502
        details = response.json()["error"]["details"]
        assert details == {"http_status": 503, "provider": "postgrest"}

    def test_admission_denied_sets_retry_after(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.post("/write")
        async def write():
            raise AdmissionDeniedAppError(code="admission_denied", message="slow down")

        response = client.post("/write")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "1"

    def test_details_omitted_when_empty(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/plain")
        async def plain():
            raise ValidationAppError(code="test", message="test")

        data = client.get("/plain").json()

        assert set(data["error"]) == {"code", "message", "request_id"}


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/crash")
        async def crash():
            raise RuntimeError("snapshot file is locked")

        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"

    def test_general_exception_handler_hides_message(self) -> None:
        """Original error text and type never reach the response body."""
        request = AsyncMock()
        request.url.path = "/v1/resources/businesses"
        request.method = "GET"

        exc = ValueError("connection string postgres://user:pw@db")
        response = asyncio.run(general_exception_handler(request, exc))

        data = _body(response)
        text = json.dumps(data)
        assert response.status_code == 500
        assert "postgres://" not in text
        assert "ValueError" not in text
        assert "Traceback" not in text


def test_setup_registers_both_handlers(app_with_handlers: FastAPI) -> None:
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
