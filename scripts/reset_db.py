#!/usr/bin/env python3
"""Script to reset the key-value database or just the session vault.

Usage:
  python scripts/reset_db.py [--force] [--only vault]
"""

import argparse
import os
import sys
from pathlib import Path

# Add project root to sys.path so we can import backend packages
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

from backend.core.database import Base, delete_value, get_engine, init_db
from backend.core.vault import VAULT_KEY


def confirm(prompt: str, force: bool) -> bool:
    if force:
        return True
    return input(f"  {prompt} Continue? [y/N]: ").lower() == "y"


def reset_sqlite(force: bool):
    """Drop and recreate all tables."""
    print("Resetting SQLite database...")
    if not confirm("This will delete all stored data.", force):
        print("  Skipping SQLite reset.")
        return

    init_db(os.environ.get("DATABASE_URL"))
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    print("  SQLite tables dropped and recreated.")


def reset_vault(force: bool):
    """Delete the vault key, leaving other keys alone."""
    print("Resetting session vault...")
    if not confirm("This will delete every saved sourcing session.", force):
        print("  Skipping vault reset.")
        return

    init_db(os.environ.get("DATABASE_URL"))
    delete_value(VAULT_KEY)
    print(f"  Deleted key: {VAULT_KEY}")


def main():
    parser = argparse.ArgumentParser(description="Reset Vendor Nexus storage.")
    parser.add_argument("--force", "-f", action="store_true", help="Skip confirmation prompts")
    parser.add_argument("--only", choices=["vault"], help="Only clear the session vault")
    args = parser.parse_args()

    # Load environment variables
    load_dotenv(project_root / ".env")

    print("\nWARNING: Database Reset\n")

    if args.only == "vault":
        reset_vault(args.force)
    else:
        reset_sqlite(args.force)

    print("Done!")


if __name__ == "__main__":
    main()
