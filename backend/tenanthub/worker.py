"""Worker process for periodic auth housekeeping.

Runs an asyncio loop that deletes expired or already-used auth tokens
(refresh sessions, email verification and password reset links) once a day.
"""

from __future__ import annotations

import asyncio
import logging

from tenanthub.config import get_settings
from tenanthub.db import get_session_factory
from tenanthub.middleware import setup_logging

logger = logging.getLogger(__name__)

PURGE_INTERVAL_SECONDS = 86400  # 24 hours


async def run_purge_loop() -> None:
    """Main worker loop that purges dead auth tokens daily."""
    from tenanthub.services.auth import purge_expired_tokens

    logger.info("Token purge worker started")
    session_factory = get_session_factory()

    while True:
        try:
            async with session_factory() as session:
                purged = await purge_expired_tokens(session)
            logger.info("Token purge complete: deleted=%d", purged)
        except Exception:
            logger.exception("Token purge failed")

        await asyncio.sleep(PURGE_INTERVAL_SECONDS)


def main() -> None:
    """Entry point for the worker process."""
    setup_logging(get_settings())
    asyncio.run(run_purge_loop())


if __name__ == "__main__":
    main()
