"""Tests for middleware: request size limits, request context and logging setup."""

import io
import logging

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.logging import RequestContextMiddleware, RequestIDFilter, current_request_id, setup_logging
from app.security import MaxBodySizeMiddleware


# ---------------------------------------------------------------------------
# Helpers - build minimal FastAPI apps with specific middleware for isolation
# ---------------------------------------------------------------------------

def _make_app_with_body_limit(max_bytes: int) -> FastAPI:
    """Create a minimal app with MaxBodySizeMiddleware configured."""
    test_app = FastAPI()
    test_app.add_middleware(MaxBodySizeMiddleware, max_bytes=max_bytes)

    @test_app.post("/api/vision")
    async def vision(request: Request):
        await request.body()
        return {"tags": []}

    @test_app.post("/other")
    async def other(request: Request):
        await request.body()
        return {"result": "ok"}

    return test_app


def _make_app_with_request_context() -> FastAPI:
    """Create a minimal app with RequestContextMiddleware configured."""
    test_app = FastAPI()
    test_app.add_middleware(RequestContextMiddleware)

    @test_app.get("/health")
    async def health():
        return {"ok": True, "request_id": current_request_id.get()}

    return test_app


# ---------------------------------------------------------------------------
# Max Body Size Middleware Tests
# ---------------------------------------------------------------------------

class TestMaxBodySizeMiddleware:
    """Tests for upload size limits on the vision endpoint."""

    def test_small_upload_allowed(self):
        """Uploads under the limit pass through."""
        client = TestClient(_make_app_with_body_limit(1000))

        resp = client.post("/api/vision", content=b"x" * 500)
        assert resp.status_code == 200

    def test_oversized_upload_rejected(self):
        """Uploads over the limit return 413 with an error body."""
        client = TestClient(_make_app_with_body_limit(100))

        resp = client.post("/api/vision", content=b"x" * 200)
        assert resp.status_code == 413
        assert "maximum allowed size" in resp.json()["error"]

    def test_other_paths_not_guarded(self):
        """Paths outside the guarded set are not size-limited."""
        client = TestClient(_make_app_with_body_limit(100))

        resp = client.post("/other", content=b"x" * 200)
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Request ID Middleware Tests
# ---------------------------------------------------------------------------

class TestRequestContextMiddleware:
    """Tests for request ID binding."""

    def test_response_has_request_id_header(self):
        """Every response should include an X-Request-ID header."""
        client = TestClient(_make_app_with_request_context())

        resp = client.get("/health")
        assert resp.status_code == 200
        rid = resp.headers["x-request-id"]
        assert len(rid) == 12  # hex[:12]
        assert resp.json()["request_id"] == rid

    def test_request_ids_are_unique(self):
        """Each request gets a distinct ID."""
        client = TestClient(_make_app_with_request_context())

        ids = {client.get("/health").headers["x-request-id"] for _ in range(10)}
        assert len(ids) == 10

    def test_well_formed_incoming_id_is_reused(self):
        """An X-Request-ID from the caller is kept when it is a short token."""
        client = TestClient(_make_app_with_request_context())

        resp = client.get("/health", headers={"X-Request-ID": "edge-42.a_b"})
        assert resp.headers["x-request-id"] == "edge-42.a_b"
        assert resp.json()["request_id"] == "edge-42.a_b"

    def test_malformed_incoming_id_is_replaced(self):
        client = TestClient(_make_app_with_request_context())

        resp = client.get("/health", headers={"X-Request-ID": "has spaces; and=junk"})
        rid = resp.headers["x-request-id"]
        assert rid != "has spaces; and=junk"
        assert len(rid) == 12

    def test_access_line_logged(self, caplog):
        client = TestClient(_make_app_with_request_context())

        with caplog.at_level(logging.INFO, logger="app.access"):
            client.get("/health")

        access = [r for r in caplog.records if r.name == "app.access"]
        assert len(access) == 1
        assert access[0].getMessage().startswith("GET /health 200 ")


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def test_setup_logging_stamps_request_id():
    stream = io.StringIO()
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("debug", stream=stream)
        token = current_request_id.set("abc123def456")
        try:
            logging.getLogger("app.test").info("hello")
        finally:
            current_request_id.reset(token)

        output = stream.getvalue()
        assert "[abc123def456] app.test - hello" in output
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert isinstance(root.handlers[0].filters[0], RequestIDFilter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
