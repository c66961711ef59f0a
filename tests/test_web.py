"""Tests for the HTTP endpoints."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from alttextgen.config import GatewayConfig
from alttextgen.container import ServiceContainer
from alttextgen.web.app import create_app
from tests.utils.vendors import gemini_response, gemini_text, mock_sdk_client


@pytest.fixture
def client(config: GatewayConfig, container: ServiceContainer) -> TestClient:
    return TestClient(create_app(config, container))


def _auth(user: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {user}-token"}


def _nonce(client: TestClient, user: str = "editor") -> str:
    resp = client.post("/api/nonce", headers=_auth(user))
    assert resp.status_code == 200
    return resp.json()["nonce"]


class TestGenerateEndpoint:
    def test_success(self, client: TestClient, container: ServiceContainer) -> None:
        mock_sdk_client(
            container.get("provider.gemini"), "post",
            response=gemini_response(gemini_text("A red bicycle leaning against a brick wall.")),
        )

        resp = client.post(
            "/ajax/ai_generate_alt",
            data={"nonce": _nonce(client), "attachment_id": "42"},
            headers=_auth("editor"),
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "data": {"alt": "A red bicycle leaning against a brick wall."},
        }
        status = client.get("/api/attachments/42").json()
        assert status["alt"] == "A red bicycle leaning against a brick wall."
        assert status["ai_generated"] is True
        assert status["action"] == "regenerate"

    def test_forbidden_without_capability(self, client: TestClient,
                                          container: ServiceContainer) -> None:
        post = mock_sdk_client(container.get("provider.gemini"), "post")
        resp = client.post(
            "/ajax/ai_generate_alt",
            data={"nonce": "whatever", "attachment_id": "42"},
            headers=_auth("viewer"),
        )
        assert resp.status_code == 403
        body = resp.json()
        assert body["success"] is False
        assert isinstance(body["data"], str)
        post.assert_not_called()

    def test_bad_attachment_id(self, client: TestClient) -> None:
        resp = client.post(
            "/ajax/ai_generate_alt",
            data={"nonce": _nonce(client), "attachment_id": "abc"},
            headers=_auth("editor"),
        )
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "data": "Invalid attachment ID."}

    def test_provider_error(self, client: TestClient, container: ServiceContainer) -> None:
        mock_sdk_client(container.get("provider.gemini"), "post", error=httpx.ConnectTimeout("timeout"))
        resp = client.post(
            "/ajax/ai_generate_alt",
            data={"nonce": _nonce(client), "attachment_id": "42"},
            headers=_auth("editor"),
        )
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "data": "Google Gemini API error: timeout"}
        assert client.get("/api/attachments/42").json()["alt"] == ""

    def test_no_credentials_in_response(self, client: TestClient,
                                        container: ServiceContainer) -> None:
        mock_sdk_client(container.get("provider.gemini"), "post", error=RuntimeError("denied"))
        resp = client.post(
            "/ajax/ai_generate_alt",
            data={"nonce": _nonce(client), "attachment_id": "42"},
            headers=_auth("editor"),
        )
        assert "gemini-test-key" not in resp.text
        assert "Traceback" not in resp.text


class TestNonceEndpoint:
    def test_requires_upload_capability(self, client: TestClient) -> None:
        assert client.post("/api/nonce", headers=_auth("viewer")).status_code == 403
        assert client.post("/api/nonce").status_code == 403


class TestAuthentication:
    def test_user_header_is_not_trusted(self, client: TestClient) -> None:
        spoofed = {"X-User": "admin"}
        assert client.post("/api/nonce", headers=spoofed).status_code == 403
        assert client.get("/api/settings", headers=spoofed).status_code == 403
        resp = client.post(
            "/api/settings", json={"ai_alt_text_api_key_gemini": "stolen"}, headers=spoofed,
        )
        assert resp.status_code == 403

    def test_unknown_token(self, client: TestClient) -> None:
        headers = {"Authorization": "Bearer admin"}
        assert client.get("/api/settings", headers=headers).status_code == 403

    def test_token_for_one_user_cannot_use_nonce_of_another(self, client: TestClient,
                                                             container: ServiceContainer) -> None:
        post = mock_sdk_client(container.get("provider.gemini"), "post")
        resp = client.post(
            "/ajax/ai_generate_alt",
            data={"nonce": _nonce(client, "admin"), "attachment_id": "42"},
            headers=_auth("editor"),
        )
        assert resp.status_code == 403
        post.assert_not_called()


class TestAttachmentEndpoint:
    def test_unknown(self, client: TestClient) -> None:
        assert client.get("/api/attachments/999").status_code == 404

    def test_fresh(self, client: TestClient) -> None:
        assert client.get("/api/attachments/42").json()["action"] == "generate"


class TestSettingsEndpoints:
    def test_get_requires_manage_options(self, client: TestClient) -> None:
        assert client.get("/api/settings", headers=_auth("editor")).status_code == 403

    def test_get(self, client: TestClient) -> None:
        resp = client.get("/api/settings", headers=_auth("admin"))
        assert resp.status_code == 200
        fields = resp.json()["fields"]
        assert fields[0]["key"] == "ai_alt_text_provider"
        assert fields[1]["value"] == "********"
        assert "gemini-test-key" not in resp.text

    def test_save(self, client: TestClient) -> None:
        resp = client.post(
            "/api/settings",
            json={"ai_alt_text_provider": "claude"},
            headers=_auth("admin"),
        )
        assert resp.status_code == 200
        assert resp.json() == {"saved": ["ai_alt_text_provider"]}
        assert client.get("/api/providers").json()["active"] == "claude"

    def test_save_invalid(self, client: TestClient) -> None:
        resp = client.post(
            "/api/settings",
            json={"ai_alt_text_model_gemini": "gpt-4o"},
            headers=_auth("admin"),
        )
        assert resp.status_code == 400

    def test_save_forbidden(self, client: TestClient) -> None:
        resp = client.post(
            "/api/settings", json={"ai_alt_text_provider": "claude"}, headers=_auth("editor"),
        )
        assert resp.status_code == 403


class TestProvidersEndpoint:
    def test_catalog(self, client: TestClient) -> None:
        data = client.get("/api/providers").json()
        assert data["active"] == "gemini"
        by_name = {p["name"]: p for p in data["providers"]}
        assert by_name["gemini"]["available"] is True
        assert by_name["openai"]["available"] is False
        assert by_name["claude"]["default_model"] == "claude-3-5-haiku-20241022"
