"""Give every live catalog item without a code a fresh one and create its asset directory."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

# Script entrypoint: ensure `backend/` is importable.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.services.catalog_items import backfill_item_codes  # noqa: E402


ACTOR = "script:assign_item_codes"


async def _main() -> int:
    url = os.environ.get("DATABASE_URL")
    if not url:
        print("DATABASE_URL is required.", file=sys.stderr)
        return 2

    engine = create_async_engine(url, pool_pre_ping=True)
    try:
        async with async_sessionmaker(bind=engine, expire_on_commit=False)() as session:
            async with session.begin():
                assigned = await backfill_item_codes(session, actor=ACTOR)
    finally:
        await engine.dispose()

    for item_id, code in assigned:
        print(f"{item_id} -> {code}")
    print(f"Assigned {len(assigned)} item code(s).")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(asyncio.run(_main()))
