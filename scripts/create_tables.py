"""
create_tables.py — idempotent table creation script.
Run once before the first start, or after adding a model.

Usage:
    python scripts/create_tables.py
"""

from __future__ import annotations

import asyncio

from planit.config import settings
from planit.database import check_db_connectivity, create_all, engine
from planit.models import Base


async def main() -> None:
    """Verify the database is reachable, then create the fingerprint and settings tables."""
    print(f"Connecting to {engine.url.render_as_string(hide_password=True)}...")
    if not await check_db_connectivity():
        raise SystemExit(f"  ✗ Database unreachable (APP_ENV={settings.app_env})")

    await create_all(engine)
    for table in sorted(Base.metadata.tables):
        print(f"  ✓ {table}")

    print("\nDone. Start the API with `uvicorn planit.main:app`.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
