"""Permanently remove articles that have been soft-deleted for too long."""
import argparse
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from newsroom.config import settings
from newsroom.database import Database
from newsroom.logging_config import setup_logging
from newsroom.services.article_service import purge_deleted_articles

logger = logging.getLogger("newsroom.scripts.purge_deleted")


async def run(retention_days: int) -> int:
    cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
    database = Database(settings.DATABASE_URL)
    database.open()
    try:
        async with database.session() as session:
            removed = await purge_deleted_articles(session, cutoff)
    finally:
        await database.close()
    logger.info("Purged %d articles soft-deleted before %s", removed, cutoff.isoformat())
    return removed


def main():
    parser = argparse.ArgumentParser(description="Purge soft-deleted articles")
    parser.add_argument(
        "--days",
        type=int,
        default=settings.SOFT_DELETE_RETENTION_DAYS,
        help="Retention window in days",
    )
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL)
    asyncio.run(run(args.days))


if __name__ == "__main__":
    main()
