#!/usr/bin/env python3
"""
Backfill Embeddings Script

Embeds every note that has no stored vector (or every note with --all,
e.g. after switching EMBEDDING_BACKEND or EMBEDDING_MODEL, since vectors
from different models are not comparable).

Usage:
    Requires the database to be reachable (see .env):
    $ python scripts/backfill_embeddings.py
    $ python scripts/backfill_embeddings.py --all
"""

import argparse
import asyncio
import logging

from stickies.core.database import dispose_engine
from stickies.core.logging import setup_logging
from stickies.repositories.store import get_note_store
from stickies.services.embeddings import get_embedding_service
from stickies.services.indexing import IndexingService

logger = logging.getLogger("stickies.scripts.backfill")


async def main(only_missing: bool) -> None:
    """Index notes through the same path the API uses."""
    embedder = get_embedding_service()
    logger.info("Backfilling with provider '%s'", embedder.name)

    indexer = IndexingService(get_note_store(), embedder)
    try:
        indexed = await indexer.reindex(only_missing=only_missing)
    finally:
        await dispose_engine()

    print(f"Indexed {indexed} notes.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backfill note embeddings")
    parser.add_argument(
        "--all",
        action="store_true",
        help="Re-index every note, not only those missing a vector",
    )
    args = parser.parse_args()

    setup_logging()
    asyncio.run(main(only_missing=not args.all))
