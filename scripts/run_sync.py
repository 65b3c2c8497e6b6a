# scripts/run_sync.py
"""
One-off Vademecum sync from the shell.

Overlap with the API process's scheduled run is only prevented with
SYNC_LOCK_BACKEND=redis; the default memory guard is per process.

    python -m scripts.run_sync
    python -m scripts.run_sync --clear-cache
"""
from dotenv import load_dotenv
load_dotenv()

import os
import sys
import json
import asyncio
import argparse
import logging

from app.container import SYNC_LOCK_BACKEND, get_catalog_client, get_supplement_repo, get_sync_job

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def unguarded_overlap(backend: str, sync_enabled: bool) -> bool:
    """True when this CLI run cannot see a scheduled run in the API process."""
    return sync_enabled and backend != "redis"


async def main() -> int:
    parser = argparse.ArgumentParser(description="Sync the Vademecum catalog into MongoDB")
    parser.add_argument("--clear-cache", action="store_true", help="clear the catalog cache before syncing")
    args = parser.parse_args()

    if unguarded_overlap(SYNC_LOCK_BACKEND, os.getenv("VADEMECUM_SYNC_ENABLED", "0") == "1"):
        print(
            "[sync] warning: SYNC_LOCK_BACKEND=memory cannot see a scheduled run in the API process",
            file=sys.stderr, flush=True,
        )

    client = get_catalog_client()
    try:
        if args.clear_cache:
            client.clear_cache()

        await get_supplement_repo().ensure_indexes()
        result = await get_sync_job().run_once()
        if result is None:
            print("[sync] another run is in progress, nothing done", file=sys.stderr, flush=True)
            return 3
        if result.listing_failed:
            print(f"[sync] {result.message}", file=sys.stderr, flush=True)
            return 2

        print(result.model_dump_json(indent=2), flush=True)
        print(f"[sync] cache: {json.dumps(client.get_cache_stats())}", file=sys.stderr, flush=True)
        return 0 if result.success else 1
    finally:
        await client.aclose()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
