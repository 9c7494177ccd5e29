"""
Tests for encrypted credential storage and provider connection tests.
"""
import asyncio
import json

import httpx
import pytest
from cryptography.fernet import Fernet
from fastapi import status

from dashboard.models import CredentialSet
from dashboard.services import credential_service
from dashboard.utils.redact import MASK


def _stripe():
    return {"publishable_key": "pk_test_abc", "secret_key": "sk_test_abc", "webhook_secret": ""}


@pytest.mark.unit
class TestEncryption:
    """Test credential encryption and masking."""

    def test_payload_is_not_plaintext(self):
        """Encrypted payloads never contain the secret and decrypt back."""
        token = credential_service.encrypt_credentials({"stripe": _stripe()})
        assert "sk_test_abc" not in token
        assert credential_service.decrypt_credentials(token) == {"stripe": _stripe()}

    def test_foreign_key_decrypts_to_empty(self):
        """A token from another key reads as an empty set."""
        token = Fernet(Fernet.generate_key()).encrypt(b'{"stripe": {}}').decode()
        assert credential_service.decrypt_credentials(token) == {}

    def test_garbage_decrypts_to_empty(self):
        """Unreadable or missing payloads read as an empty set."""
        assert credential_service.decrypt_credentials("not-a-token") == {}
        assert credential_service.decrypt_credentials(None) == {}

    def test_mask_credentials(self):
        """Only secret fields are masked."""
        masked = credential_service.mask_credentials({"instagram": {"username": "shop", "password": "pw"}})
        assert masked == {"instagram": {"username": "shop", "password": MASK}}


@pytest.mark.integration
class TestCredentialEndpoints:
    """Test the credential routes."""

    def test_empty_set(self, client, project):
        """A project without credentials returns an empty set."""
        response = client.get(f"/api/projects/{project.id}/credentials")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["credentials"] == {}

    def test_save_returns_masked(self, client, db_session, project):
        """Saved credentials come back masked and are stored encrypted."""
        response = client.put(
            f"/api/projects/{project.id}/credentials",
            json={"credentials": {"stripe": _stripe()}},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["credentials"]["stripe"]["secret_key"] == MASK

        row = db_session.query(CredentialSet).filter_by(project_id=project.id).one()
        assert "sk_test_abc" not in row.encrypted_payload

        stored = client.get(f"/api/projects/{project.id}/credentials").json()["credentials"]
        assert stored["stripe"] == {"publishable_key": MASK, "secret_key": MASK, "webhook_secret": ""}

    def test_masked_values_keep_stored_secret(self, client, db_session, project):
        """Masked values sent back keep the stored secret."""
        client.put(f"/api/projects/{project.id}/credentials", json={"credentials": {"stripe": _stripe()}})
        masked = client.get(f"/api/projects/{project.id}/credentials").json()["credentials"]
        masked["stripe"]["publishable_key"] = "pk_live_new"

        client.put(f"/api/projects/{project.id}/credentials", json={"credentials": masked})

        row = db_session.query(CredentialSet).filter_by(project_id=project.id).one()
        decrypted = credential_service.decrypt_credentials(row.encrypted_payload)
        assert decrypted["stripe"]["secret_key"] == "sk_test_abc"
        assert decrypted["stripe"]["publishable_key"] == "pk_live_new"

    def test_missing_required_field(self, client, project):
        """Empty required fields are reported per platform."""
        response = client.put(
            f"/api/projects/{project.id}/credentials",
            json={"credentials": {"elevenlabs": {"api_key": "", "voice_id": "v1"}}},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["details"]["missing"] == {"elevenlabs": ["api_key"]}

    def test_unknown_platform(self, client, project):
        """Unknown platforms cannot be saved."""
        response = client.put(
            f"/api/projects/{project.id}/credentials",
            json={"credentials": {"myspace": {"token": "x"}}},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_project(self, client):
        """Credentials of a missing project are a 404."""
        assert client.get("/api/projects/404/credentials").status_code == status.HTTP_404_NOT_FOUND

    def test_format_only_platform(self, client):
        """Platforms without a connection check only get a format check."""
        response = client.post(
            "/api/credentials/test",
            json={"platform": "LinkedIn", "credentials": {
                "client_id": "id", "client_secret": "secret", "access_token": "tok",
                "profile_url": "https://www.linkedin.com/in/newsletter",
            }},
        )
        assert response.json() == {"success": True, "message": "Credentials format is valid", "details": None}

    def test_unknown_platform_test(self, client):
        """Testing an unknown platform fails without raising."""
        response = client.post("/api/credentials/test", json={"platform": "MySpace", "credentials": {}})
        assert response.json()["success"] is False
        assert "Unknown platform" in response.json()["message"]


@pytest.mark.unit
class TestProviderChecks:
    """Test provider connection checks."""

    def test_openai_success(self):
        """OpenAI keys are checked against the models endpoint."""
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"data": []})

        result = asyncio.run(credential_service.test_credentials(
            "openai/openrouter",
            {"api_key": "sk-test", "model": ""},
            transport=httpx.MockTransport(handler),
        ))
        assert result.success is True
        assert result.details == {"model": "gpt-4-turbo"}
        assert seen == {"url": "https://api.openai.com/v1/models", "auth": "Bearer sk-test"}

    def test_elevenlabs_rejected_key(self):
        """Provider error messages are surfaced."""
        def handler(request):
            assert request.headers["xi-api-key"] == "bad"
            return httpx.Response(401, json={"detail": {"message": "Invalid API key"}})

        result = asyncio.run(credential_service.test_credentials(
            "ElevenLabs", {"api_key": "bad"}, transport=httpx.MockTransport(handler),
        ))
        assert result.success is False
        assert result.message == "ElevenLabs API error: Invalid API key"

    def test_stripe_network_error(self):
        """Network errors become a failed test."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = asyncio.run(credential_service.test_credentials(
            "stripe", _stripe(), transport=httpx.MockTransport(handler),
        ))
        assert result.success is False
        assert result.message.startswith("Stripe API test failed")

    def test_missing_fields_skip_network(self):
        """Missing fields fail before any request is made."""
        def handler(request):
            raise AssertionError("no request expected")

        result = asyncio.run(credential_service.test_credentials(
            "stripe", {"publishable_key": "pk"}, transport=httpx.MockTransport(handler),
        ))
        assert result.success is False
        assert result.message == "Missing required fields: secret_key"

    def test_error_body_without_message(self):
        """Error bodies without a message fall back to the reason phrase."""
        def handler(request):
            return httpx.Response(500, content=json.dumps(["oops"]))

        result = asyncio.run(credential_service.test_credentials(
            "openai/openrouter", {"api_key": "sk-test"}, transport=httpx.MockTransport(handler),
        ))
        assert result.success is False
        assert result.message == "OpenAI API error: Internal Server Error"

    def test_non_ascii_key_is_a_failed_test(self):
        """A key httpx cannot put in a header fails the test instead of erroring."""
        def handler(request):
            raise AssertionError("no request expected")

        result = asyncio.run(credential_service.test_credentials(
            "ElevenLabs", {"api_key": "clé-secrète"}, transport=httpx.MockTransport(handler),
        ))
        assert result.success is False
        assert result.message == "ElevenLabs API test failed: credentials contain non-ASCII characters"
