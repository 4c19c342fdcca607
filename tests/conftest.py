"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import List, Optional

import pytest

# Set test environment before the package reads its config
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("TENANT_STORE", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from fastapi.testclient import TestClient

from twin_gateway.adapters.vendor_adapter_gemini import ChatProvider
from twin_gateway.api.dependencies import get_gateway, get_tenant_store
from twin_gateway.main import app
from twin_gateway.models.tenant import Persona, TenantRecord
from twin_gateway.models.transcript import ConversationTurn
from twin_gateway.services.gateway import ChatGateway
from twin_gateway.services.tenant_store import InMemoryTenantStore


class FakeProvider(ChatProvider):
    """Records calls; replies with `reply` or raises `error`."""

    def __init__(self, reply: str = "Hello from the twin.", error: Optional[Exception] = None, delay: float = 0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls: List[dict] = []
        self.cancelled = False

    async def send(
        self,
        system_prompt: str,
        turns: List[ConversationTurn],
        new_message: str,
        credential: str,
        model: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "turns": list(turns),
            "new_message": new_message,
            "credential": credential,
            "model": model,
            "tenant_id": tenant_id,
        })
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def ada_tenant():
    """Fully configured tenant."""
    return TenantRecord(
        public_bot_id="ada-bot",
        display_name="Ada",
        persona=Persona(
            bio="Mathematician and writer.",
            skills="Analysis, notes on the Analytical Engine",
            expertise="Computing",
            tone="Warm and precise.",
            opinions="Machines may one day compose music.",
            linkedin="https://linkedin.com/in/ada",
            github="https://github.com/ada",
            twitter=None,
            resume_link="https://example.com/ada-cv.pdf",
        ),
        credential="AIza-ada-secret-key",
    )


@pytest.fixture
def unconfigured_tenant():
    """Tenant whose owner never saved a credential."""
    return TenantRecord(public_bot_id="grace-bot", display_name="Ada", credential=None)


@pytest.fixture
def store(ada_tenant, unconfigured_tenant):
    return InMemoryTenantStore([ada_tenant, unconfigured_tenant])


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def make_provider():
    """Factory for providers with a custom reply, error or delay."""
    return FakeProvider


@pytest.fixture
def gateway(store, provider):
    return ChatGateway(store=store, provider=provider, lookup_timeout=2.0, provider_timeout=5.0)


@pytest.fixture
def client(gateway):
    """TestClient wired to the in-memory gateway."""
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_tenant_store] = lambda: gateway.store
    yield TestClient(app)
    app.dependency_overrides.clear()
