"""Tests for the owner credential endpoint."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from twin_gateway.adapters.vendor_adapter_gemini import (
    KEY_INVALID_MESSAGE,
    KEY_OK_MESSAGE,
    KeyValidationResult,
)
from twin_gateway.infra.auth import MASTER, verify_owner_key
from twin_gateway.infra.database import get_db
from twin_gateway.main import app
from twin_gateway.models.tenant import PersonaMode

VALIDATE = "twin_gateway.api.routers.owner.validate_credential"


@pytest.fixture
def owner_client(client):
    """Client authenticated as the owner of grace-bot."""
    app.dependency_overrides[verify_owner_key] = lambda: "grace-bot"
    return client


@pytest.fixture
def master_client(client):
    app.dependency_overrides[verify_owner_key] = lambda: MASTER
    return client


class TestSaveCredential:
    """Test POST /owner/credential."""

    def test_valid_key_is_stored(self, owner_client, store):
        with patch(VALIDATE, new=AsyncMock(return_value=KeyValidationResult(True, 200, KEY_OK_MESSAGE))) as validate:
            response = owner_client.post("/owner/credential", json={"apiKey": "  AIza-new-grace-key "})

        assert response.status_code == 200
        assert response.json() == {"message": KEY_OK_MESSAGE}
        validate.assert_awaited_once_with("AIza-new-grace-key")
        assert store.lookup("grace-bot").credential == "AIza-new-grace-key"
        assert store.lookup("grace-bot").is_configured

    def test_stored_key_enables_chat(self, owner_client, provider):
        with patch(VALIDATE, new=AsyncMock(return_value=KeyValidationResult(True, 200, KEY_OK_MESSAGE))):
            owner_client.post("/owner/credential", json={"apiKey": "AIza-new-grace-key"})

        response = owner_client.post("/chat/grace-bot", json={"newMessage": "Hello"})

        assert response.status_code == 200
        assert provider.calls[0]["credential"] == "AIza-new-grace-key"

    @pytest.mark.parametrize("body", [{}, {"apiKey": ""}, {"apiKey": "   "}])
    def test_missing_key(self, owner_client, body):
        with patch(VALIDATE, new=AsyncMock()) as validate:
            response = owner_client.post("/owner/credential", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "No API key provided."}
        validate.assert_not_awaited()

    def test_invalid_key_is_not_stored(self, owner_client, store):
        with patch(VALIDATE, new=AsyncMock(return_value=KeyValidationResult(False, 400, KEY_INVALID_MESSAGE))):
            response = owner_client.post("/owner/credential", json={"apiKey": "bad-key"})

        assert response.status_code == 400
        assert response.json() == {"error": KEY_INVALID_MESSAGE}
        assert store.lookup("grace-bot").credential is None

    def test_foreign_bot_is_forbidden(self, owner_client, store):
        with patch(VALIDATE, new=AsyncMock()) as validate:
            response = owner_client.post("/owner/credential", json={"apiKey": "AIza-x", "botId": "ada-bot"})

        assert response.status_code == 403
        validate.assert_not_awaited()
        assert store.lookup("ada-bot").credential == "AIza-ada-secret-key"

    def test_master_key_requires_bot_id(self, master_client):
        with patch(VALIDATE, new=AsyncMock()):
            response = master_client.post("/owner/credential", json={"apiKey": "AIza-x"})

        assert response.status_code == 400
        assert response.json() == {"error": "botId is required when using the master key."}

    def test_master_key_targets_named_bot(self, master_client, store):
        with patch(VALIDATE, new=AsyncMock(return_value=KeyValidationResult(True, 200, KEY_OK_MESSAGE))):
            response = master_client.post("/owner/credential", json={"apiKey": "AIza-rotated", "botId": "ada-bot"})

        assert response.status_code == 200
        assert store.lookup("ada-bot").credential == "AIza-rotated"

    def test_unknown_bot(self, master_client):
        with patch(VALIDATE, new=AsyncMock(return_value=KeyValidationResult(True, 200, KEY_OK_MESSAGE))):
            response = master_client.post("/owner/credential", json={"apiKey": "AIza-x", "botId": "nobody"})

        assert response.status_code == 404
        assert response.json() == {"error": "Bot not found"}

    def test_requires_owner_key(self, client):
        app.dependency_overrides[get_db] = lambda: MagicMock()

        response = client.post("/owner/credential", json={"apiKey": "AIza-x"})

        assert response.status_code == 401
        assert response.json() == {"error": "No authorization key provided."}

    def test_short_owner_key_rejected(self, client):
        app.dependency_overrides[get_db] = lambda: MagicMock()

        response = client.post("/owner/credential", json={"apiKey": "AIza-x"}, headers={"X-API-Key": "short"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid API key format"}

    def test_unknown_owner_key_rejected(self, client):
        app.dependency_overrides[get_db] = lambda: MagicMock()

        with patch("twin_gateway.services.owner_key_service.verify_and_get_bot_id", return_value=None):
            response = client.post(
                "/owner/credential",
                json={"apiKey": "AIza-x"},
                headers={"X-API-Key": "x" * 64},
            )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid API key"}


class TestSaveProfile:
    """Test PUT /owner/profile."""

    def test_profile_replaces_persona(self, owner_client, store):
        response = owner_client.put("/owner/profile", json={
            "displayName": "Grace Hopper",
            "profile": {"bio": "Rear admiral and compiler pioneer.", "resumeLink": "https://example.com/grace.pdf"},
            "personaMode": "first_person",
        })

        assert response.status_code == 200
        assert response.json() == {"message": "Profile saved."}
        tenant = store.lookup("grace-bot")
        assert tenant.display_name == "Grace Hopper"
        assert tenant.persona.bio == "Rear admiral and compiler pioneer."
        assert tenant.persona.resume_link == "https://example.com/grace.pdf"
        assert tenant.persona_mode == PersonaMode.FIRST_PERSON
        assert tenant.credential is None

    def test_omitted_name_and_mode_are_kept(self, owner_client, store):
        response = owner_client.put("/owner/profile", json={"profile": {"tone": "Brisk."}})

        assert response.status_code == 200
        tenant = store.lookup("grace-bot")
        assert tenant.display_name == "Ada"
        assert tenant.persona_mode == PersonaMode.THIRD_PERSON
        assert tenant.persona.tone == "Brisk."

    def test_next_chat_uses_new_profile(self, client, provider):
        app.dependency_overrides[verify_owner_key] = lambda: "ada-bot"

        client.put("/owner/profile", json={"profile": {"bio": "Poetical scientist."}})
        client.post("/chat/ada-bot", json={"newMessage": "Who is Ada?"})

        prompt = provider.calls[0]["system_prompt"]
        assert "Poetical scientist." in prompt
        assert "Mathematician and writer." not in prompt
        assert provider.calls[0]["credential"] == "AIza-ada-secret-key"

    def test_invalid_persona_mode(self, owner_client):
        response = owner_client.put("/owner/profile", json={"personaMode": "royal_we"})

        assert response.status_code == 422

    def test_foreign_bot_is_forbidden(self, owner_client, store):
        response = owner_client.put("/owner/profile", json={"botId": "ada-bot", "profile": {"bio": "Hijacked."}})

        assert response.status_code == 403
        assert store.lookup("ada-bot").persona.bio == "Mathematician and writer."

    def test_master_key_requires_bot_id(self, master_client):
        response = master_client.put("/owner/profile", json={"profile": {}})

        assert response.status_code == 400

    def test_unknown_bot(self, master_client):
        response = master_client.put("/owner/profile", json={"botId": "nobody", "profile": {}})

        assert response.status_code == 404
        assert response.json() == {"error": "Bot not found"}

    def test_requires_owner_key(self, client):
        app.dependency_overrides[get_db] = lambda: MagicMock()

        response = client.put("/owner/profile", json={"profile": {}})

        assert response.status_code == 401
