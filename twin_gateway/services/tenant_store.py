"""Tenant store: resolve a public bot id to its TenantRecord."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, ContextManager, Dict, Iterable, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from twin_gateway.infra.database import get_db_session
from twin_gateway.models.tenant import Persona, PersonaMode, TenantRecord, PERSONA_FIELDS

logger = logging.getLogger("twin_gateway.services.tenant_store")


class TenantStore(ABC):
    """Point lookup by public bot id. Read-only from the gateway's side."""

    @abstractmethod
    def lookup(self, public_bot_id: str) -> Optional[TenantRecord]:
        """Return the tenant or None when the id is unknown."""

    @abstractmethod
    def save_credential(self, public_bot_id: str, credential: str) -> bool:
        """Owner path: store a validated credential. False when the id is unknown."""

    @abstractmethod
    def save_profile(
        self,
        public_bot_id: str,
        display_name: Optional[str],
        persona: Persona,
        persona_mode: Optional[PersonaMode],
    ) -> bool:
        """Owner path: replace the persona. None keeps the current name or mode."""

    def ping(self) -> bool:
        """Readiness check."""
        return True


def _persona_mode(value: Any) -> PersonaMode:
    try:
        return PersonaMode(value) if value else PersonaMode.THIRD_PERSON
    except ValueError:
        logger.warning("Unknown persona mode, using third person", extra={"persona_mode": value})
        return PersonaMode.THIRD_PERSON


def tenant_from_dict(data: Dict[str, Any]) -> TenantRecord:
    """
    Build a TenantRecord from a stored document.

    Accepts both snake_case and the camelCase layout of the original user
    documents ({botId, displayName, profile: {...}, config: {geminiApiKey}}).
    """
    config_doc = data.get("config") or {}
    public_bot_id = data.get("public_bot_id") or data.get("botId") or config_doc.get("botId")
    if not public_bot_id:
        raise ValueError("Tenant document has no public bot id")

    persona_doc = data.get("persona") or data.get("profile") or {}
    credential = (
        data.get("credential")
        or data.get("gemini_api_key")
        or config_doc.get("geminiApiKey")
    )

    return TenantRecord(
        public_bot_id=str(public_bot_id),
        display_name=data.get("display_name") or data.get("displayName") or "",
        persona=Persona.from_dict(persona_doc),
        credential=credential or None,
        persona_mode=_persona_mode(data.get("persona_mode") or data.get("personaMode")),
        llm_model=data.get("llm_model") or data.get("llmModel"),
    )


class InMemoryTenantStore(TenantStore):
    """Dictionary-backed store for development and tests."""

    def __init__(self, tenants: Iterable[TenantRecord] = ()):
        self._tenants: Dict[str, TenantRecord] = {t.public_bot_id: t for t in tenants}

    @classmethod
    def from_seed_file(cls, path: str) -> "InMemoryTenantStore":
        """Load tenants from a JSON list of tenant documents."""
        documents = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(documents, list):
            raise ValueError("Tenant seed file must contain a JSON list")
        store = cls(tenant_from_dict(doc) for doc in documents)
        logger.info("Loaded tenant seed file", extra={"path": path, "tenants": len(store._tenants)})
        return store

    def add(self, tenant: TenantRecord) -> None:
        self._tenants[tenant.public_bot_id] = tenant

    def lookup(self, public_bot_id: str) -> Optional[TenantRecord]:
        return self._tenants.get(public_bot_id)

    def save_credential(self, public_bot_id: str, credential: str) -> bool:
        tenant = self._tenants.get(public_bot_id)
        if tenant is None:
            return False
        self._tenants[public_bot_id] = replace(tenant, credential=credential)
        return True

    def save_profile(
        self,
        public_bot_id: str,
        display_name: Optional[str],
        persona: Persona,
        persona_mode: Optional[PersonaMode],
    ) -> bool:
        tenant = self._tenants.get(public_bot_id)
        if tenant is None:
            return False
        self._tenants[public_bot_id] = replace(
            tenant,
            display_name=tenant.display_name if display_name is None else display_name,
            persona=persona,
            persona_mode=persona_mode or tenant.persona_mode,
        )
        return True


SessionFactory = Callable[[], ContextManager[Session]]


class SqlTenantStore(TenantStore):
    """Tenant store on the `tenants` table (unique index on public_bot_id)."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self._session_factory = session_factory

    def lookup(self, public_bot_id: str) -> Optional[TenantRecord]:
        with self._session_factory() as session:
            row = session.execute(
                text("""
                    SELECT public_bot_id, display_name, bio, skills, expertise, tone,
                           opinions, linkedin, github, twitter, resume_link,
                           gemini_api_key, persona_mode, llm_model
                    FROM tenants
                    WHERE public_bot_id = :public_bot_id
                """),
                {"public_bot_id": public_bot_id}
            ).fetchone()

        if not row:
            return None

        return TenantRecord(
            public_bot_id=row.public_bot_id,
            display_name=row.display_name or "",
            persona=Persona(**{name: getattr(row, name) for name in PERSONA_FIELDS}),
            credential=row.gemini_api_key or None,
            persona_mode=_persona_mode(row.persona_mode),
            llm_model=row.llm_model,
        )

    def save_credential(self, public_bot_id: str, credential: str) -> bool:
        with self._session_factory() as session:
            result = session.execute(
                text("""
                    UPDATE tenants
                    SET gemini_api_key = :credential, updated_at = CURRENT_TIMESTAMP
                    WHERE public_bot_id = :public_bot_id
                """),
                {"credential": credential, "public_bot_id": public_bot_id}
            )
            return result.rowcount > 0

    def save_profile(
        self,
        public_bot_id: str,
        display_name: Optional[str],
        persona: Persona,
        persona_mode: Optional[PersonaMode],
    ) -> bool:
        params = {name: getattr(persona, name) for name in PERSONA_FIELDS}
        params.update(
            public_bot_id=public_bot_id,
            display_name=display_name,
            persona_mode=persona_mode.value if persona_mode else None,
        )
        with self._session_factory() as session:
            result = session.execute(
                text("""
                    UPDATE tenants
                    SET display_name = COALESCE(:display_name, display_name),
                        bio = :bio, skills = :skills, expertise = :expertise,
                        tone = :tone, opinions = :opinions, linkedin = :linkedin,
                        github = :github, twitter = :twitter, resume_link = :resume_link,
                        persona_mode = COALESCE(:persona_mode, persona_mode),
                        updated_at = CURRENT_TIMESTAMP
                    WHERE public_bot_id = :public_bot_id
                """),
                params
            )
            return result.rowcount > 0

    def ping(self) -> bool:
        try:
            with self._session_factory() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning("Tenant store ping failed", exc_info=True)
            return False
