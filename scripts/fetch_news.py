"""Cron entry point: refresh the cached news feeds from the providers."""
import argparse
import asyncio
import logging

import httpx

from newsroom.config import settings
from newsroom.database import Database
from newsroom.errors import AppError
from newsroom.logging_config import setup_logging
from newsroom.services import news_service

logger = logging.getLogger("newsroom.scripts.fetch_news")


async def run(categories: list[str], skip_latest: bool = False) -> int:
    """Fetch every feed in its own transaction; return the number of failures."""
    database = Database(settings.DATABASE_URL)
    database.open()
    failures = 0
    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            if not skip_latest:
                try:
                    async with database.session() as session:
                        await news_service.fetch_latest_news(session, client)
                except AppError as exc:
                    failures += 1
                    logger.error("Latest news fetch failed: %s", exc.message)

            for category in categories:
                try:
                    async with database.session() as session:
                        await news_service.fetch_news_by_category(session, client, category)
                except AppError as exc:
                    failures += 1
                    logger.error("%s news fetch failed: %s", category, exc.message)
    finally:
        await database.close()
    return failures


def main():
    parser = argparse.ArgumentParser(description="Fetch news from the configured providers")
    parser.add_argument(
        "--category",
        action="append",
        choices=news_service.NEWS_CATEGORIES,
        help="Category to fetch (repeatable; default: all)",
    )
    parser.add_argument("--skip-latest", action="store_true", help="Do not fetch the latest feed")
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL)
    failures = asyncio.run(run(args.category or list(news_service.NEWS_CATEGORIES), args.skip_latest))
    raise SystemExit(1 if failures else 0)


if __name__ == "__main__":
    main()
