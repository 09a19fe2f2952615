"""Tests for RequestIDMiddleware."""

from uuid import UUID

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.testclient import TestClient

from api.middleware import RequestIDMiddleware
from utils.request_context import get_request_id


@pytest.fixture
def app():
    """Minimal FastAPI app with RequestIDMiddleware."""
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/test")
    async def test_endpoint(request: Request):
        return JSONResponse({"request_id": request.state.request_id, "context_id": get_request_id()})

    return app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestRequestIDMiddleware:
    """Tests for RequestIDMiddleware."""

    def test_response_has_request_id_header(self, client):
        """Response includes X-Request-ID header."""
        response = client.get("/test")

        UUID(response.headers["X-Request-ID"])

    def test_state_and_context_match_header(self, client):
        response = client.get("/test")

        header_id = response.headers["X-Request-ID"]
        assert response.json() == {"request_id": header_id, "context_id": header_id}

    def test_each_request_gets_unique_id(self, client):
        """Different requests get different IDs."""
        first = client.get("/test").headers["X-Request-ID"]
        second = client.get("/test").headers["X-Request-ID"]
        assert first != second

    def test_incoming_id_echoed(self, client):
        response = client.get("/test", headers={"X-Request-ID": "edge-42"})
        assert response.headers["X-Request-ID"] == "edge-42"

    @pytest.mark.parametrize("bad", ["has space", "x" * 65, "semi;colon"])
    def test_invalid_incoming_id_replaced(self, client, bad):
        response = client.get("/test", headers={"X-Request-ID": bad})

        assert response.headers["X-Request-ID"] != bad
        UUID(response.headers["X-Request-ID"])

    def test_context_cleared_after_request(self, client):
        client.get("/test")
        assert get_request_id() is None
