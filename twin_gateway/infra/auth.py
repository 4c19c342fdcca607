"""Owner API authentication. The chat endpoint itself is public."""

import logging
from typing import Optional
from fastapi import HTTPException, Security, Depends, status
from fastapi.security import APIKeyHeader
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from twin_gateway.infra.config import config
from twin_gateway.infra.database import get_db

logger = logging.getLogger("twin_gateway.auth")

owner_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Sentinel returned for the master key; the bot id must then be explicit
MASTER = "master"


async def verify_owner_key(
    owner_key: Optional[str] = Security(owner_key_header),
    db: Session = Depends(get_db),
) -> str:
    """
    Verify an owner key and return the public bot id it controls.

    Returns:
        public_bot_id, or MASTER for the configured master key

    Raises:
        HTTPException: If the key is missing or invalid
    """
    if not owner_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authorization key provided.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if len(owner_key) < 16:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key format",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if config.MASTER_API_KEY and owner_key == config.MASTER_API_KEY:
        return MASTER

    try:
        from twin_gateway.services.owner_key_service import verify_and_get_bot_id
        public_bot_id = verify_and_get_bot_id(owner_key, db)
    except SQLAlchemyError as e:
        logger.warning("Owner key verification failed", extra={"error": type(e).__name__})
        public_bot_id = None

    if public_bot_id:
        return public_bot_id

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid API key",
        headers={"WWW-Authenticate": "ApiKey"},
    )


def resolve_owned_bot(requested_bot_id: Optional[str], key_bot_id: str) -> str:
    """
    Bot id the caller may act on.

    Owner keys act on their own bot; the master key must name one.

    Raises:
        HTTPException: On a missing or foreign bot id
    """
    if key_bot_id == MASTER:
        if not requested_bot_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="botId is required when using the master key.",
            )
        return requested_bot_id

    if requested_bot_id and requested_bot_id != key_bot_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: API key does not have access to this bot",
        )
    return key_bot_id
