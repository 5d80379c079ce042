"""API tests for the health check, ROI calculator and waitlist."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from portal.main import app
from portal.waitlist.routes import (
    SUBMIT_ERROR,
    WaitlistConfig,
    WaitlistSignup,
    get_waitlist_config,
    validate_signup,
)


@pytest.fixture
def client():
    """Create a test client."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def webhook():
    """Capture requests sent to the waitlist webhook."""
    received = []
    state = {"status": 200}

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(state["status"], json={})

    app.dependency_overrides[get_waitlist_config] = lambda: WaitlistConfig(
        webhook_url="https://hooks.example/waitlist"
    )
    real_client = httpx.AsyncClient
    with patch(
        "portal.waitlist.routes.httpx.AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    ):
        yield received, state


# =============================================================================
# Health Check Tests
# =============================================================================


class TestHealthCheck:
    """Tests for health check endpoint."""

    def test_health_check(self, client):
        """Test health check returns healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data


# =============================================================================
# ROI Calculator Tests
# =============================================================================


class TestROICalculator:
    """Tests for /roi/calculate."""

    def test_default_inputs(self, client):
        response = client.post("/roi/calculate", json={})
        assert response.status_code == 200
        data = response.json()
        assert data["monthly_calls"] == pytest.approx(360)
        assert data["annual_loss"] == pytest.approx(113400)
        assert data["formatted"]["annual_loss"] == "$113,400"
        assert data["formatted"]["leases_lost"] == "6.3"

    def test_custom_inputs(self, client):
        response = client.post(
            "/roi/calculate",
            json={"total_calls": 0, "average_rent": 2000},
        )
        assert response.status_code == 200
        assert response.json()["lifetime_loss"] == 0

    def test_negative_input_rejected(self, client):
        response = client.post("/roi/calculate", json={"total_calls": -5})
        assert response.status_code == 422

    def test_browser_preflight(self, client):
        response = client.options(
            "/roi/calculate",
            headers={
                "Origin": "https://leo.example",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "access-control-allow-credentials" not in response.headers


# =============================================================================
# Waitlist Tests
# =============================================================================


class TestValidateSignup:
    """Tests for field validation."""

    def test_valid(self):
        assert validate_signup(WaitlistSignup(name="Sam", email="sam@example.com")) == {}

    def test_missing_fields(self):
        assert validate_signup(WaitlistSignup(name="  ", email="")) == {
            "name": "Name is required",
            "email": "Email is required",
        }

    @pytest.mark.parametrize("email", ["sam", "sam@example", "sam @example.com"])
    def test_invalid_email(self, email):
        errors = validate_signup(WaitlistSignup(name="Sam", email=email))
        assert errors == {"email": "Please enter a valid email address"}


class TestWaitlistRoute:
    """Tests for POST /waitlist."""

    def test_signup_forwarded(self, client, webhook):
        received, _ = webhook
        response = client.post(
            "/waitlist", json={"name": " Sam Renter ", "email": "sam@example.com"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert len(received) == 1
        assert received[0].url == "https://hooks.example/waitlist"
        assert json.loads(received[0].content) == {
            "name": "Sam Renter",
            "email": "sam@example.com",
        }

    def test_invalid_email_not_forwarded(self, client, webhook):
        received, _ = webhook
        response = client.post("/waitlist", json={"name": "Sam", "email": "nope"})

        assert response.status_code == 422
        assert response.json() == {"errors": {"email": "Please enter a valid email address"}}
        assert received == []

    def test_webhook_failure(self, client, webhook):
        received, state = webhook
        state["status"] = 500

        response = client.post("/waitlist", json={"name": "Sam", "email": "sam@example.com"})

        assert response.status_code == 502
        assert response.json() == {"errors": {"submit": SUBMIT_ERROR}}
        assert len(received) == 1

    def test_webhook_not_configured(self, client):
        app.dependency_overrides[get_waitlist_config] = lambda: WaitlistConfig(webhook_url="")
        response = client.post("/waitlist", json={"name": "Sam", "email": "sam@example.com"})
        assert response.status_code == 502
