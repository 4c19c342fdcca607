"""Owner API keys: issue, hash and verify keys that authorize the owner path."""

import secrets
import uuid
from typing import Optional, Dict, Any

import bcrypt
from sqlalchemy import text
from sqlalchemy.orm import Session


def generate_owner_key() -> str:
    """
    Generate a secure random owner key.

    Returns:
        64-character URL-safe key
    """
    return secrets.token_urlsafe(48)


def hash_owner_key(owner_key: str) -> str:
    """Bcrypt hash of an owner key (cost factor 12)."""
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(owner_key.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_owner_key_hash(owner_key: str, key_hash: str) -> bool:
    """Check a plain key against its bcrypt hash."""
    try:
        return bcrypt.checkpw(owner_key.encode('utf-8'), key_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def get_key_prefix(owner_key: str) -> str:
    """First 8 characters, stored in clear for lookup and display."""
    return owner_key[:8] if len(owner_key) >= 8 else owner_key


def create_owner_key(db: Session, public_bot_id: str, name: Optional[str] = None) -> Dict[str, Any]:
    """
    Issue a new owner key for a bot.

    The plain key is only returned here; only its hash is stored.

    Returns:
        Dict with id, public_bot_id, key (plain), key_prefix and name
    """
    owner_key = generate_owner_key()
    key_id = str(uuid.uuid4())
    db.execute(
        text("""
            INSERT INTO owner_api_keys (id, public_bot_id, key_prefix, key_hash, name, is_active)
            VALUES (:id, :public_bot_id, :key_prefix, :key_hash, :name, TRUE)
        """),
        {
            "id": key_id,
            "public_bot_id": public_bot_id,
            "key_prefix": get_key_prefix(owner_key),
            "key_hash": hash_owner_key(owner_key),
            "name": name,
        }
    )
    db.commit()
    return {
        "id": key_id,
        "public_bot_id": public_bot_id,
        "key": owner_key,
        "key_prefix": get_key_prefix(owner_key),
        "name": name,
    }


def verify_and_get_bot_id(owner_key: str, db: Session) -> Optional[str]:
    """
    Verify an owner key and return the bot it belongs to.

    Args:
        owner_key: Plain key from the request
        db: Database session

    Returns:
        public_bot_id if the key is valid, None otherwise
    """
    # bcrypt is slow, so narrow by prefix first
    rows = db.execute(
        text("""
            SELECT id, public_bot_id, key_hash
            FROM owner_api_keys
            WHERE key_prefix = :key_prefix
              AND is_active = TRUE
        """),
        {"key_prefix": get_key_prefix(owner_key)}
    ).fetchall()

    for row in rows:
        if verify_owner_key_hash(owner_key, row.key_hash):
            db.execute(
                text("""
                    UPDATE owner_api_keys
                    SET last_used_at = CURRENT_TIMESTAMP
                    WHERE id = :key_id
                """),
                {"key_id": row.id}
            )
            db.commit()
            return str(row.public_bot_id)

    return None
