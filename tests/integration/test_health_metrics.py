"""Integration tests for /health, /healthz and /metrics endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from backend.organizer.main import app

pytestmark = pytest.mark.integration


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestHealthEndpoint:
    """Test /health and /healthz endpoints."""

    def test_health_is_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @patch("backend.organizer.api.routes.health.check_db")
    def test_healthz_returns_200_when_db_ok(self, mock_check_db: MagicMock, client: TestClient) -> None:
        """Test /healthz returns 200 when the database answers."""
        mock_check_db.return_value = (True, "ok")

        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"]["db"] == "ok"

    @patch("backend.organizer.api.routes.health.check_db")
    def test_healthz_returns_503_when_db_fails(self, mock_check_db: MagicMock, client: TestClient) -> None:
        """Test /healthz returns 503 when DB check fails."""
        mock_check_db.return_value = (False, "connection refused")

        response = client.get("/healthz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["db"] == "connection refused"


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_returns_prometheus_format(self, client: TestClient) -> None:
        """Test /metrics returns Prometheus text format."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "# HELP" in response.text

    def test_metrics_includes_document_metrics(self, client: TestClient) -> None:
        """Test /metrics includes the document pipeline counters."""
        from backend.organizer.utils.metrics import documents_rejected_total, scan_runs_total

        documents_rejected_total.labels(reason="invalid_file_type").inc()
        scan_runs_total.labels(outcome="success").inc()

        response = client.get("/metrics")

        assert response.status_code == 200
        text = response.text
        assert 'documents_rejected_total{reason="invalid_file_type"}' in text
        assert 'scan_runs_total{outcome="success"}' in text
        assert "cover_notifications_total" in text


class TestRootEndpoint:
    """Test root endpoint."""

    def test_root_returns_api_info(self, client: TestClient) -> None:
        """Test root endpoint returns API information."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Book Organizer API"
        assert data["version"] == "0.1.0"
