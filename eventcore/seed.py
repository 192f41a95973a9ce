"""Command line entry point for the reference-data seeder.

    eventcore-seed            # uses DATABASE_URL
    python -m eventcore.seed

Exit status is 0 when the store reached its full seeded state and 1 on the
first hard failure. Re-running is always safe.
"""

from typing import Optional
import asyncio
import logging
import sys

from eventcore.config import settings
from eventcore.database import Database
from eventcore.errors import HashFailure
from eventcore.logging_setup import configure_logging
from eventcore.services import build_services
from eventcore.services.seeder import DEMO_USERS, SeedSummary

logger = logging.getLogger(__name__)


async def seed(url: Optional[str] = None) -> SeedSummary:
    async with Database(url) as database:
        services = build_services(database)
        return await services.seeder.run()


def main(url: Optional[str] = None) -> int:
    configure_logging(settings.LOG_LEVEL)
    try:
        asyncio.run(seed(url))
    except HashFailure as e:
        logger.error(f"Seeding failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Seeding failed: {str(e)}", exc_info=True)
        return 1

    logger.info("Demo users (shared demo password from SEED_DEMO_PASSWORD):")
    for user in DEMO_USERS:
        logger.info(f"   {user['role'].value.title()}: {user['email']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
