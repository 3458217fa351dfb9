"""Move media of existing catalog items from the shared upload area into their code directories."""

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

from app.services.catalog_items import migrate_item_media  # noqa: E402


ACTOR = "script:migrate_item_media"
logger = logging.getLogger("app.scripts.migrate_item_media")


async def _main() -> int:
    url = os.environ.get("DATABASE_URL")
    if not url:
        print("DATABASE_URL is required.", file=sys.stderr)
        return 2

    engine = create_async_engine(url, pool_pre_ping=True)
    try:
        async with async_sessionmaker(bind=engine, expire_on_commit=False)() as session:
            async with session.begin():
                changed = await migrate_item_media(session, actor=ACTOR)
    except Exception:
        logger.exception("Media migration failed")
        return 1
    finally:
        await engine.dispose()

    print(f"Migrated media for {changed} catalog item(s).")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(asyncio.run(_main()))
