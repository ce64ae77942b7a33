"""
Simple script to create the users, threads, and messages tables.
Run this once to set up the schema for the configured backend
(DANTE_DB=pg or DANTE_DB=sqlite). The server also does this on startup.

Usage: python create_tables.py
"""

from sqlalchemy import inspect

from config import get_settings
from services.storage import create_storage

TABLES = ("users", "threads", "messages")

if __name__ == "__main__":
    settings = get_settings()
    storage = create_storage(settings)

    if storage.kind == "mem":
        print("In-memory backend selected; nothing to create.")
        raise SystemExit(0)

    print(f"Creating database tables ({storage.kind})...")
    storage.migrate()

    # Verify tables were created
    existing = set(inspect(storage.engine).get_table_names())
    for table in TABLES:
        if table in existing:
            print(f"✓ {table} table ready")
        else:
            print(f"✗ Failed to create {table} table")

    storage.close()
