#!/usr/bin/env python3
"""Issue an owner API key for a bot.

Usage:
    python scripts/create_owner_key.py <public_bot_id> [--name NAME]

The plain key is printed once; only its bcrypt hash is stored.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from twin_gateway.infra.database import get_db_session
from twin_gateway.services.owner_key_service import create_owner_key
from twin_gateway.services.tenant_store import SqlTenantStore


def main():
    parser = argparse.ArgumentParser(description="Issue an owner API key")
    parser.add_argument("public_bot_id", help="Public bot id the key will control")
    parser.add_argument("--name", default=None, help="Label for the key")

    args = parser.parse_args()

    if SqlTenantStore().lookup(args.public_bot_id) is None:
        print(f"Bot not found: {args.public_bot_id}", file=sys.stderr)
        sys.exit(1)

    with get_db_session() as session:
        issued = create_owner_key(session, args.public_bot_id, name=args.name)

    print(f"Owner key for {issued['public_bot_id']} (prefix {issued['key_prefix']}):")
    print(issued["key"])
    print("Store it now; it cannot be shown again.")


if __name__ == "__main__":
    main()
