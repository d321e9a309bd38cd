"""Create the Feed Relay tables on the configured database."""

import asyncio
import logging

from feed_relay.db.session import create_tables, engine

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    await create_tables()
    logger.info("Database initialized at %s", engine.url.render_as_string(hide_password=True))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_db())
