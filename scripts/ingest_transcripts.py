"""Ingest a directory of markdown podcast transcripts into Supabase."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.ingestion.pipeline import backfill_embeddings, ingest_markdown  # noqa: E402
from src.ingestion.storage import get_supabase_client  # noqa: E402

logger = logging.getLogger("ingest_transcripts")


async def ingest_directory(data_dir: str, embed: bool, max_files: int | None) -> int:
    """Ingest every ``*.md`` file under *data_dir*; return the error count."""
    files = sorted(Path(data_dir).rglob("*.md"))
    if max_files:
        files = files[:max_files]
    if not files:
        logger.error("No .md transcripts found under %s", data_dir)
        return 1

    client = await get_supabase_client()
    errors = 0
    for i, path in enumerate(files, 1):
        try:
            result = await ingest_markdown(path.read_text(encoding="utf-8"), client)
            logger.info("[%d/%d] %s: %d chunks", i, len(files), result.title, result.num_chunks)
        except Exception:
            logger.exception("Failed to ingest %s", path)
            errors += 1

    logger.info("Ingested %d/%d transcripts", len(files) - errors, len(files))

    if embed:
        report = await backfill_embeddings(client)
        logger.info("Embedded %d chunks (%d errors)", report.processed, report.errors)

    return errors


def main() -> None:
    parser = argparse.ArgumentParser(description="Ingest podcast transcripts")
    parser.add_argument("data_dir", help="Directory containing markdown transcripts")
    parser.add_argument("--embed", action="store_true", help="Backfill embeddings afterwards")
    parser.add_argument("--max-files", type=int, default=None, help="Limit number of files")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    errors = asyncio.run(ingest_directory(args.data_dir, args.embed, args.max_files))
    sys.exit(1 if errors else 0)


if __name__ == "__main__":
    main()
