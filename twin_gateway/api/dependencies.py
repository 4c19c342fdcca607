"""Process-wide gateway instance, built once and injected into routes."""

import logging
import threading
from typing import Optional

from twin_gateway.adapters.vendor_adapter_gemini import GeminiProvider
from twin_gateway.infra.config import config
from twin_gateway.services.gateway import ChatGateway
from twin_gateway.services.tenant_store import InMemoryTenantStore, SqlTenantStore, TenantStore

logger = logging.getLogger("twin_gateway.api.dependencies")

_gateway: Optional[ChatGateway] = None
_gateway_lock = threading.Lock()


def build_tenant_store() -> TenantStore:
    """Tenant store selected by TENANT_STORE."""
    if config.TENANT_STORE == "memory":
        if config.TENANT_SEED_FILE:
            return InMemoryTenantStore.from_seed_file(config.TENANT_SEED_FILE)
        logger.warning("TENANT_STORE=memory without TENANT_SEED_FILE, starting empty")
        return InMemoryTenantStore()
    if config.TENANT_STORE != "sql":
        raise ValueError(f"Unknown TENANT_STORE: {config.TENANT_STORE}")
    return SqlTenantStore()


def get_gateway() -> ChatGateway:
    """FastAPI dependency returning the shared ChatGateway."""
    global _gateway
    if _gateway is None:
        with _gateway_lock:
            if _gateway is None:
                _gateway = ChatGateway(store=build_tenant_store(), provider=GeminiProvider())
                logger.info("Chat gateway initialized", extra={"tenant_store": config.TENANT_STORE})
    return _gateway


def get_tenant_store() -> TenantStore:
    """FastAPI dependency returning the shared tenant store."""
    return get_gateway().store


def reset_gateway() -> None:
    """Drop the shared instance (shutdown)."""
    global _gateway
    with _gateway_lock:
        _gateway = None
