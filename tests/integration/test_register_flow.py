"""
Integration tests for the verification flows.

Drives the real application routes, code store, issuance service,
challenge handler and console email sender end to end. Accounts are
held in memory so no database is required; codes are read back from
the console sender's log output.
"""

import logging
import re
from base64 import b64encode
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from src.adapters.security.passwords import hash_password
from src.api.dependencies import get_account_service
from src.api.main import app
from src.config.settings import Settings, get_settings
from src.domain.code_store import VerificationCodeStore

from tests.fakes import FakeClock, InMemoryAccounts

pytestmark = pytest.mark.integration

CODE_PATTERN = re.compile(r"\[VERIFICATION\] Email: (\S+) Code: (\d+) Purpose: (\S+)")


@pytest.fixture
def flow_store(settings: Settings, clock: FakeClock) -> VerificationCodeStore:
    """Store configured from settings, on a controllable clock."""
    return VerificationCodeStore(
        ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
        code_length=settings.otp_code_length,
        clock=clock,
    )


@pytest.fixture
def client(
    flow_store: VerificationCodeStore, accounts: InMemoryAccounts, settings: Settings
) -> Iterator[TestClient]:
    """Test client on the real app with in-memory accounts."""
    app.state.code_store = flow_store
    app.dependency_overrides[get_account_service] = lambda: accounts
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def basic_auth_header(email: str, password: str) -> dict:
    """Create HTTP BASIC AUTH header for testing."""
    credentials = f"{email}:{password}"
    encoded = b64encode(credentials.encode()).decode()
    return {"Authorization": f"Basic {encoded}"}


def last_code(caplog: pytest.LogCaptureFixture, email: str) -> str:
    """Return the most recent code logged for an email."""
    codes = [m.group(2) for m in CODE_PATTERN.finditer(caplog.text) if m.group(1) == email]
    assert codes, f"no verification code logged for {email}"
    return codes[-1]


def wrong_code(code: str) -> str:
    return "0" * len(code) if code != "0" * len(code) else "1" * len(code)


VIEWER_FORM = {
    "email": "Viewer@Example.com",
    "password": "Secure123",
    "confirm_password": "Secure123",
    "full_name": "Jane Doe",
}

CREATOR_FORM = {
    "email": "creator@example.com",
    "password": "Secure123",
    "confirm_password": "Secure123",
    "full_name": "Sam Lee",
    "channel_name": "Sam Makes",
    "website_url": "https://sam.example.com",
}


class TestRegisterFlow:
    """End-to-end registration through the verification code."""

    def test_full_viewer_registration(
        self,
        client: TestClient,
        accounts: InMemoryAccounts,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO):
            response = client.post("/v1/register/viewer", json=VIEWER_FORM)

        assert response.status_code == 202
        assert response.json()["email"] == "viewer@example.com"
        assert "[VERIFICATION]" in caplog.text
        code = last_code(caplog, "viewer@example.com")
        assert len(code) == 6

        status_response = client.get("/v1/verification/status", params={"email": "viewer@example.com"})
        assert status_response.json()["pending"] is True

        response = client.post(
            "/v1/register/verify",
            json={"email": "viewer@example.com", "code": code, "role": "VIEWER"},
        )

        assert response.status_code == 201
        assert response.json()["account_id"] == accounts.users["viewer@example.com"]["id"]
        assert accounts.users["viewer@example.com"]["role"] == "VIEWER"
        assert accounts.authenticate("viewer@example.com", "Secure123") is True

        status_response = client.get("/v1/verification/status", params={"email": "viewer@example.com"})
        assert status_response.json()["pending"] is False

    def test_full_creator_registration(
        self,
        client: TestClient,
        accounts: InMemoryAccounts,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/creator", json=CREATOR_FORM)
        code = last_code(caplog, "creator@example.com")

        response = client.post(
            "/v1/register/verify",
            json={"email": "creator@example.com", "code": code, "role": "CREATOR"},
        )

        assert response.status_code == 201
        profile = accounts.users["creator@example.com"]["profile"]
        assert profile.channel_name == "Sam Makes"
        assert accounts.users["creator@example.com"]["role"] == "CREATOR"

    def test_code_single_use(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/viewer", json=VIEWER_FORM)
        code = last_code(caplog, "viewer@example.com")
        body = {"email": "viewer@example.com", "code": code, "role": "VIEWER"}

        assert client.post("/v1/register/verify", json=body).status_code == 201
        response = client.post("/v1/register/verify", json=body)

        assert response.status_code == 400
        assert response.json()["reason"] == "not_found"

    def test_wrong_role_does_not_consume_code(
        self,
        client: TestClient,
        accounts: InMemoryAccounts,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A viewer code cannot create a creator account, and stays usable."""
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/viewer", json=VIEWER_FORM)
        code = last_code(caplog, "viewer@example.com")

        response = client.post(
            "/v1/register/verify",
            json={"email": "viewer@example.com", "code": code, "role": "CREATOR"},
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "not_found"
        assert "viewer@example.com" not in accounts.users

        response = client.post(
            "/v1/register/verify",
            json={"email": "viewer@example.com", "code": code, "role": "VIEWER"},
        )
        assert response.status_code == 201

    def test_duplicate_email_409(
        self,
        client: TestClient,
        accounts: InMemoryAccounts,
    ) -> None:
        accounts.add("viewer@example.com", hash_password("Secure123", rounds=4))

        response = client.post("/v1/register/viewer", json=VIEWER_FORM)

        assert response.status_code == 409

    def test_account_created_meanwhile_409(
        self,
        client: TestClient,
        accounts: InMemoryAccounts,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Email taken between request and confirmation."""
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/viewer", json=VIEWER_FORM)
        code = last_code(caplog, "viewer@example.com")
        accounts.add("viewer@example.com", hash_password("Other1234", rounds=4))

        response = client.post(
            "/v1/register/verify",
            json={"email": "viewer@example.com", "code": code, "role": "VIEWER"},
        )

        assert response.status_code == 409


class TestCodeLifecycle:
    """Expiry, attempt ceiling and re-issue through the API."""

    def test_expired_code_rejected(
        self,
        client: TestClient,
        clock: FakeClock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/viewer", json=VIEWER_FORM)
        code = last_code(caplog, "viewer@example.com")

        clock.advance(seconds=301)
        response = client.post(
            "/v1/register/verify",
            json={"email": "viewer@example.com", "code": code, "role": "VIEWER"},
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "Verification code has expired", "reason": "expired"}

    def test_code_valid_just_before_expiry(
        self,
        client: TestClient,
        clock: FakeClock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/viewer", json=VIEWER_FORM)
        code = last_code(caplog, "viewer@example.com")

        clock.advance(seconds=299)
        response = client.post(
            "/v1/register/verify",
            json={"email": "viewer@example.com", "code": code, "role": "VIEWER"},
        )

        assert response.status_code == 201

    def test_three_wrong_codes_lock_out(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/viewer", json=VIEWER_FORM)
        code = last_code(caplog, "viewer@example.com")
        bad = {"email": "viewer@example.com", "code": wrong_code(code), "role": "VIEWER"}

        for _ in range(3):
            response = client.post("/v1/register/verify", json=bad)
            assert response.json()["reason"] == "invalid_code"

        response = client.post(
            "/v1/register/verify",
            json={"email": "viewer@example.com", "code": code, "role": "VIEWER"},
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "too_many_attempts"

    def test_resend_replaces_code(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/viewer", json=VIEWER_FORM)
            first = last_code(caplog, "viewer@example.com")
            client.post("/v1/register/viewer", json=VIEWER_FORM)
            second = last_code(caplog, "viewer@example.com")

        if first != second:
            response = client.post(
                "/v1/register/verify",
                json={"email": "viewer@example.com", "code": first, "role": "VIEWER"},
            )
            assert response.status_code == 400

        response = client.post(
            "/v1/register/verify",
            json={"email": "viewer@example.com", "code": second, "role": "VIEWER"},
        )
        assert response.status_code == 201


class TestResendFlow:
    """Resend keeps the submitted form and replaces the code."""

    def test_resend_then_verify_creates_account(
        self,
        client: TestClient,
        accounts: InMemoryAccounts,
        clock: FakeClock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/creator", json=CREATOR_FORM)
            first = last_code(caplog, "creator@example.com")
            clock.advance(seconds=240)
            response = client.post(
                "/v1/register/resend", json={"email": "creator@example.com", "role": "CREATOR"}
            )
            second = last_code(caplog, "creator@example.com")

        assert response.status_code == 202
        # The resent code gets a full lifetime of its own
        clock.advance(seconds=240)
        if first != second:
            bad = client.post(
                "/v1/register/verify",
                json={"email": "creator@example.com", "code": first, "role": "CREATOR"},
            )
            assert bad.status_code == 400

        response = client.post(
            "/v1/register/verify",
            json={"email": "creator@example.com", "code": second, "role": "CREATOR"},
        )

        assert response.status_code == 201
        assert accounts.users["creator@example.com"]["profile"].channel_name == "Sam Makes"

    def test_resend_after_lockout_gives_fresh_budget(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/v1/register/viewer", json=VIEWER_FORM)
            code = last_code(caplog, "viewer@example.com")
            bad = {"email": "viewer@example.com", "code": wrong_code(code), "role": "VIEWER"}
            for _ in range(3):
                client.post("/v1/register/verify", json=bad)
            client.post("/v1/register/resend", json={"email": "viewer@example.com", "role": "VIEWER"})
            fresh = last_code(caplog, "viewer@example.com")

        response = client.post(
            "/v1/register/verify",
            json={"email": "viewer@example.com", "code": fresh, "role": "VIEWER"},
        )

        assert response.status_code == 201

    def test_resend_after_expiry_not_found(
        self, client: TestClient, clock: FakeClock
    ) -> None:
        client.post("/v1/register/viewer", json=VIEWER_FORM)
        clock.advance(seconds=300)

        response = client.post(
            "/v1/register/resend", json={"email": "viewer@example.com", "role": "VIEWER"}
        )

        assert response.status_code == 400
        assert response.json()["reason"] == "not_found"


class TestPasswordFlows:
    """End-to-end password change and reset."""

    @pytest.fixture(autouse=True)
    def existing_user(self, accounts: InMemoryAccounts) -> None:
        accounts.add("user@example.com", hash_password("Secure123", rounds=4))

    def test_password_change(
        self,
        client: TestClient,
        accounts: InMemoryAccounts,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        auth = basic_auth_header("user@example.com", "Secure123")
        with caplog.at_level(logging.INFO):
            response = client.post(
                "/v1/password/change/request", json={"new_password": "NewSecure1"}, headers=auth
            )
        assert response.status_code == 202
        assert "Purpose: PASSWORD_CHANGE" in caplog.text
        code = last_code(caplog, "user@example.com")

        # Old password still works until the code is confirmed
        assert accounts.authenticate("user@example.com", "Secure123") is True

        response = client.post("/v1/password/change/confirm", json={"code": code}, headers=auth)

        assert response.status_code == 200
        assert accounts.authenticate("user@example.com", "NewSecure1") is True
        assert accounts.authenticate("user@example.com", "Secure123") is False

    def test_password_reset(
        self,
        client: TestClient,
        accounts: InMemoryAccounts,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO):
            response = client.post(
                "/v1/password/reset/request",
                json={"email": "user@example.com", "new_password": "NewSecure1"},
            )
        assert response.status_code == 202
        code = last_code(caplog, "user@example.com")

        response = client.post(
            "/v1/password/reset/confirm",
            json={"email": "user@example.com", "code": code},
        )

        assert response.status_code == 200
        assert accounts.authenticate("user@example.com", "NewSecure1") is True

    def test_reset_code_not_accepted_for_registration(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post(
                "/v1/password/reset/request",
                json={"email": "user@example.com", "new_password": "NewSecure1"},
            )
        code = last_code(caplog, "user@example.com")

        response = client.post(
            "/v1/register/verify",
            json={"email": "user@example.com", "code": code, "role": "VIEWER"},
        )

        assert response.status_code == 400
        assert response.json()["reason"] == "not_found"
