"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from bugexplorer.api import create_app
from bugexplorer.github_client import NotFoundError, RateLimitError
from bugexplorer.service import AnalysisService
from bugexplorer.storage import MemoryStore


@pytest.fixture
def make_client(now, fake_client_factory, sample_commits):
    """Build a TestClient around an app with a fake GitHub client."""

    def _make(**client_kwargs):
        client_kwargs.setdefault("commits", sample_commits)
        factory = fake_client_factory(**client_kwargs)
        service = AnalysisService(
            store=MemoryStore(clock=lambda: now),
            client_factory=factory,
            clock=lambda: now,
        )
        return TestClient(create_app(service=service)), factory

    return _make


class TestAnalyzeEndpoint:
    """Tests for POST /analyze."""

    def test_analyze_success(self, make_client) -> None:
        """Test a full analytics record is returned."""
        client, _ = make_client()

        response = client.post("/analyze", json={"url": "https://github.com/o/r"})

        assert response.status_code == 200
        data = response.json()
        assert data["fullName"] == "o/r"
        assert data["totalCommits"] == 5
        assert data["bugFixCount"] == 3
        assert data["contributorCount"] == 3
        assert len(data["commitHeatmap"]) == 366
        assert set(data["bugKeywordCounts"]) == {
            "fix", "bug", "patch", "hotfix", "bugfix", "error", "issue", "crash", "fail",
        }
        assert data["analyzedAt"] is not None

    def test_repeat_request_is_identical(self, make_client) -> None:
        """Test a second request is served from cache byte for byte."""
        client, factory = make_client()

        first = client.post("/analyze", json={"url": "https://github.com/o/r"})
        second = client.post("/analyze", json={"url": "https://github.com/o/r"})

        assert first.content == second.content
        assert len(factory.created) == 1

    def test_invalid_url(self, make_client) -> None:
        """Test an unparseable URL is a client error."""
        client, _ = make_client()

        response = client.post("/analyze", json={"url": "https://example.com"})

        assert response.status_code == 400
        assert "https://github.com/owner/repo" in response.json()["error"]

    def test_malformed_body(self, make_client) -> None:
        """Test a body without url is a client error."""
        client, _ = make_client()

        response = client.post("/analyze", json={"link": "https://github.com/o/r"})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_not_found(self, make_client) -> None:
        client, _ = make_client(
            repository_error=NotFoundError("Repository not found. Please check the repository URL.", 404)
        )

        response = client.post("/analyze", json={"url": "https://github.com/o/missing"})

        assert response.status_code == 400
        assert response.json() == {"error": "Repository not found. Please check the repository URL."}

    def test_rate_limited_is_server_error(self, make_client) -> None:
        """Test other upstream failures map to 500 with the message."""
        client, _ = make_client(
            repository_error=RateLimitError("API rate limit exceeded. Please try again later.", 403)
        )

        response = client.post("/analyze", json={"url": "https://github.com/o/r"})

        assert response.status_code == 500
        assert "rate limit" in response.json()["error"]


class TestRepositoriesEndpoint:
    """Tests for GET /repositories and /health."""

    def test_empty(self, make_client) -> None:
        client, _ = make_client()

        response = client.get("/repositories")

        assert response.status_code == 200
        assert response.json() == []

    def test_lists_analyzed(self, make_client) -> None:
        """Test analyzed repositories are listed verbatim."""
        client, _ = make_client()
        analyzed = client.post("/analyze", json={"url": "https://github.com/o/r"}).json()

        response = client.get("/repositories")

        assert response.json() == [analyzed]
        assert client.get("/health").json() == {"status": "ok", "repositories": 1}
