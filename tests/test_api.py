"""
HTTP API Tests
==============

Request/response contract of the FastAPI front end.
"""

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from thumbnailer.config import Settings
from thumbnailer.errors import UpstreamFetchError
from thumbnailer.main import build_service, create_app

from conftest import SAMPLE_URL, RecordingExtractor


def failing_for_bad_urls(url: str):
    if "missing" in url:
        return UpstreamFetchError(f"Unable to open input: {url}")
    return None


@pytest.fixture
def extractor() -> RecordingExtractor:
    return RecordingExtractor(width=1080, height=1920, fail_for=failing_for_bad_urls)


@pytest.fixture
def client(extractor, cache):
    settings = Settings.model_validate({"dispatcher": {"workers": 2}})
    service = build_service(settings, extractor=extractor, cache=cache)
    app = create_app(settings, service=service)

    with TestClient(app) as test_client:
        yield test_client


class TestThumbnailEndpoint:

    def test_returns_jpeg(self, client):
        response = client.get("/thumbnail", params={"url": SAMPLE_URL})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        decoded = cv2.imdecode(np.frombuffer(response.content, np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (360, 640, 3)

    def test_missing_url_is_400(self, client, extractor, cache):
        response = client.get("/thumbnail")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing or incorrect URL"}
        assert extractor.calls == []
        assert cache.writes == 0

    def test_blank_url_is_400(self, client):
        response = client.get("/thumbnail", params={"url": "  "})
        assert response.status_code == 400

    def test_processing_failure_is_500(self, client, cache):
        response = client.get("/thumbnail", params={"url": "https://example.com/missing.mp4"})

        assert response.status_code == 500
        assert response.json() == {"error": "Error processing video"}
        assert cache.writes == 0

    def test_second_request_served_from_cache(self, client, extractor):
        first = client.get("/thumbnail", params={"url": SAMPLE_URL})
        second = client.get("/thumbnail", params={"url": SAMPLE_URL})

        assert first.content == second.content
        assert extractor.calls == [SAMPLE_URL]


class TestGenerateThumbnailEndpoint:

    def test_video_type_returns_jpeg(self, client):
        response = client.post(
            "/generate-thumbnail",
            json={"url": SAMPLE_URL, "type": "video"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.content[:2] == b"\xff\xd8"

    def test_wrong_type_is_400(self, client, extractor):
        response = client.post(
            "/generate-thumbnail",
            json={"url": SAMPLE_URL, "type": "image"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported type"}
        assert extractor.calls == []

    def test_missing_url_is_400(self, client):
        response = client.post("/generate-thumbnail", json={"type": "video"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing or incorrect URL"}

    def test_malformed_body_is_400(self, client):
        response = client.post(
            "/generate-thumbnail",
            content=b"not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert "error" in response.json()

    def test_failure_is_500(self, client):
        response = client.post(
            "/generate-thumbnail",
            json={"url": "https://example.com/missing.mp4", "type": "video"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Error processing video"}


class TestCacheStatusEndpoint:

    def test_miss_then_hit(self, client):
        before = client.get("/cache-status", params={"url": SAMPLE_URL})
        client.get("/thumbnail", params={"url": SAMPLE_URL})
        after = client.get("/cache-status", params={"url": SAMPLE_URL})

        assert before.status_code == 200
        assert before.json() == {"cacheHit": False}
        assert after.json() == {"cacheHit": True}

    def test_missing_url_is_400(self, client):
        response = client.get("/cache-status")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing or incorrect URL"}

    def test_does_not_generate(self, client, extractor):
        client.get("/cache-status", params={"url": SAMPLE_URL})
        assert extractor.calls == []


class TestServiceEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "running"
        assert body["cache_backend"] == "memory"

    def test_metrics_reflect_requests(self, client):
        client.get("/thumbnail", params={"url": SAMPLE_URL})
        client.get("/thumbnail", params={"url": SAMPLE_URL})

        body = client.get("/metrics").json()
        assert body["cache_hits"] == 1
        assert body["cache_misses"] == 1
        assert body["dispatcher"]["submitted"] == 1
        assert body["dispatcher"]["workers"] == 2

    def test_cors_headers(self, client):
        response = client.get(
            "/health",
            headers={"Origin": "https://frontend.example.com"},
        )
        assert "access-control-allow-origin" in response.headers
