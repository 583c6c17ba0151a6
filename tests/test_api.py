"""End-to-end tests for the HTTP endpoints with the mock provider."""

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from analyzer.app.core.config import settings
from analyzer.app.exceptions import (
    GatewayAuthFailure,
    GatewayRateLimited,
    GatewayUnavailable,
)
from analyzer.app.main import create_app
from analyzer.app.middleware.rate_limit import get_rate_limiters
from analyzer.app.providers.factory import get_provider, set_provider
from analyzer.app.providers.mock import MOCK_TRANSCRIPT, MockProvider

from conftest import make_pdf

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 100
TEXT = b"Minutes of the planning meeting. The team agreed to ship the release on Friday."


def assert_error_shape(response, status_code, error_code=None):
    assert response.status_code == status_code
    body = response.json()
    assert isinstance(body["error"], str) and body["error"]
    assert "timestamp" in body
    if error_code:
        assert body["error_code"] == error_code
    return body


def post_document(client, filename, content, content_type="text/plain"):
    return client.post(
        "/api/analyze/document",
        data={"type": "file"},
        files={"document": (filename, content, content_type)},
    )


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["components"]["provider"] == {"name": "mock", "configured": True}
        assert set(body["components"]["rate_limits"]["windows"]) == {
            "standard", "heavy", "auth", "image",
        }

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        assert len(client.get("/health").headers["X-Request-ID"]) == 36

    def test_unknown_route_uses_error_shape(self, client):
        assert_error_shape(client.get("/nope"), 404, "http_error")


class TestConversationEndpoint:
    """Tests for POST /api/analyze/conversation."""

    def test_success(self, client):
        response = client.post(
            "/api/analyze/conversation",
            files={"audio": ("call.mp3", b"ID3 audio bytes", "audio/mpeg")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["transcript"] == MOCK_TRANSCRIPT
        assert body["diarization"][0] == {
            "speaker": "Speaker 1",
            "text": "Thanks for joining the call.",
        }
        assert {seg["speaker"] for seg in body["diarization"]} <= {"Speaker 1", "Speaker 2"}
        assert body["summary"].startswith("Mock summary")
        assert response.headers["X-RateLimit-Limit"] == "30"
        assert response.headers["X-RateLimit-Remaining"] == "29"
        assert "X-RateLimit-Reset" in response.headers

    def test_missing_file(self, client):
        body = assert_error_shape(client.post("/api/analyze/conversation"), 400, "validation_error")
        assert body["error"] == "No audio file provided"

    def test_wrong_type(self, client):
        response = client.post(
            "/api/analyze/conversation",
            files={"audio": ("photo.png", PNG, "image/png")},
        )
        assert_error_shape(response, 400, "validation_error")

    def test_auth_failure_is_500(self, client, mock_provider):
        mock_provider.fail("transcribe", GatewayAuthFailure())
        response = client.post(
            "/api/analyze/conversation",
            files={"audio": ("call.mp3", b"audio", "audio/mpeg")},
        )
        body = assert_error_shape(response, 500, "processing_failed")
        assert "API key" in body["error"]


class TestImageEndpoint:
    """Tests for POST /api/analyze/image."""

    def test_success(self, client):
        response = client.post(
            "/api/analyze/image", files={"image": ("photo.png", PNG, "image/png")}
        )

        assert response.status_code == 200
        assert response.json()["description"].startswith("Mock description")
        assert response.headers["X-RateLimit-Limit"] == "10"

    def test_admission_rejection(self, client):
        """The 11th image request in a window is rejected with retry hints."""
        for _ in range(10):
            ok = client.post("/api/analyze/image", files={"image": ("p.png", PNG, "image/png")})
            assert ok.status_code == 200

        response = client.post("/api/analyze/image", files={"image": ("p.png", PNG, "image/png")})

        body = assert_error_shape(response, 429, "rate_limit_exceeded")
        assert 1 <= body["retryAfter"] <= 60
        assert response.headers["Retry-After"] == str(body["retryAfter"])
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Limit"] == "10"

    def test_rejected_before_validation(self, client):
        """Admission is charged even for invalid uploads."""
        for _ in range(10):
            client.post("/api/analyze/image", files={"image": ("a.txt", b"x", "text/plain")})

        response = client.post("/api/analyze/image", files={"image": ("p.png", PNG, "image/png")})
        assert response.status_code == 429

    def test_unavailable_returns_template(self, client, mock_provider):
        mock_provider.fail("describe_image", GatewayUnavailable())
        response = client.post(
            "/api/analyze/image", files={"image": ("photo.png", PNG, "image/png")}
        )

        assert response.status_code == 200
        assert "temporarily unavailable" in response.json()["description"]

    def test_upstream_rate_limit(self, client, mock_provider):
        mock_provider.fail("describe_image", GatewayRateLimited())
        response = client.post(
            "/api/analyze/image", files={"image": ("photo.png", PNG, "image/png")}
        )

        body = assert_error_shape(response, 429, "upstream_rate_limited")
        assert body["retryAfter"] == 60
        assert response.headers["Retry-After"] == "60"


class TestDocumentEndpoint:
    """Tests for POST /api/analyze/document."""

    def test_text_file(self, client):
        response = post_document(client, "minutes.txt", TEXT)

        assert response.status_code == 200
        body = response.json()
        assert body["summary"].startswith("Mock summary")
        assert body["metadata"]["fileName"] == "minutes.txt"
        assert body["metadata"]["processedAt"].endswith("Z")
        assert body["metadata"]["remainingRequests"] == 29

    def test_pdf_is_heavy(self, client):
        response = post_document(client, "deck.pdf", make_pdf(["Quarterly numbers"]), "application/pdf")

        assert response.status_code == 200
        assert response.json()["summary"].startswith("**Document:** deck.pdf")
        assert response.json()["metadata"]["remainingRequests"] == 4
        assert response.headers["X-RateLimit-Limit"] == "5"

    def test_heavy_exhaustion_leaves_standard_budget(self, client):
        pdf = make_pdf(["Quarterly numbers"])
        for _ in range(5):
            assert post_document(client, "d.pdf", pdf, "application/pdf").status_code == 200

        assert post_document(client, "d.pdf", pdf, "application/pdf").status_code == 429
        assert post_document(client, "minutes.txt", TEXT).status_code == 200

    def test_invalid_type_is_not_charged(self, client):
        response = client.post("/api/analyze/document", data={"type": "ftp"})

        assert_error_shape(response, 400, "validation_error")
        assert sum(get_rate_limiters().window_counts().values()) == 0

    def test_missing_file(self, client):
        response = client.post("/api/analyze/document", data={"type": "file"})
        assert assert_error_shape(response, 400)["error"] == "No file provided"

    def test_unsupported_file(self, client):
        response = post_document(client, "slides.pptx", b"PK..", "application/octet-stream")
        body = assert_error_shape(response, 400)
        assert "Supported: PDF" in body["error"]

    def test_url_invalid_protocol(self, client):
        response = client.post(
            "/api/analyze/document", data={"type": "url", "url": "ftp://example.com/x"}
        )
        body = assert_error_shape(response, 400)
        assert body["error"] == "Invalid URL protocol. Only HTTP and HTTPS are supported."

    def test_url_missing(self, client):
        response = client.post("/api/analyze/document", data={"type": "url"})
        assert assert_error_shape(response, 400)["error"] == "No URL provided"

    @respx.mock
    def test_url_success(self, client):
        respx.get("https://example.com/post").mock(
            return_value=httpx.Response(
                200, html=f"<html><body><p>{TEXT.decode()}</p></body></html>"
            )
        )
        response = client.post(
            "/api/analyze/document", data={"type": "url", "url": "https://example.com/post"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["metadata"]["fileName"] == "https://example.com/post"
        assert body["metadata"]["remainingRequests"] == 4

    def test_unconfigured_provider(self, client):
        set_provider(MockProvider(configured=False))
        assert_error_shape(post_document(client, "a.txt", TEXT), 500, "gateway_not_configured")

    @pytest.mark.parametrize(
        ("exc", "status_code"),
        [(GatewayAuthFailure(), 401), (GatewayRateLimited(), 429), (GatewayUnavailable(), 503)],
    )
    def test_gateway_errors(self, client, mock_provider, exc, status_code):
        mock_provider.fail("complete", exc)
        body = assert_error_shape(post_document(client, "a.txt", TEXT), status_code)
        if status_code == 429:
            assert body["retryAfter"] == 60


class TestAppErrors:
    """Tests for app-level error handling."""

    def test_unhandled_exception_is_generic_500(self, mock_provider):
        class Broken(MockProvider):
            async def describe_image(self, *args, **kwargs):
                raise RuntimeError("secret internals")

        app = create_app()
        app.dependency_overrides[get_provider] = lambda: Broken()
        set_provider(mock_provider)

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.post(
                "/api/analyze/image", files={"image": ("p.png", PNG, "image/png")}
            )

        body = assert_error_shape(response, 500, "internal_error")
        assert "secret internals" not in body["error"]
        assert "Traceback" not in response.text

    def test_oversized_body_is_413(self, monkeypatch, mock_provider):
        monkeypatch.setattr(settings, "max_request_body_bytes", 1024)
        set_provider(mock_provider)

        with TestClient(create_app()) as client:
            response = client.post(
                "/api/analyze/image", files={"image": ("p.png", b"x" * 4096, "image/png")}
            )

        assert_error_shape(response, 413, "payload_too_large")

    def test_chunked_multipart_over_limit_is_413(self, monkeypatch, mock_provider):
        """Uploads without Content-Length are cut off during form parsing."""
        monkeypatch.setattr(settings, "max_request_body_bytes", 1024)
        set_provider(mock_provider)

        boundary = "analyzer-test-boundary"
        head = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="image"; filename="p.png"\r\n'
            "Content-Type: image/png\r\n\r\n"
        ).encode()
        tail = f"\r\n--{boundary}--\r\n".encode()

        def chunks():
            yield head
            for _ in range(8):
                yield b"x" * 512
            yield tail

        with TestClient(create_app()) as client:
            response = client.post(
                "/api/analyze/image",
                content=chunks(),
                headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
            )

        assert "content-length" not in {k.lower() for k in response.request.headers}
        assert_error_shape(response, 413, "payload_too_large")
        assert mock_provider.calls_for("describe_image") == []
