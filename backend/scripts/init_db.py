"""Create the database tables.

Usage:
    python -m scripts.init_db
"""

import asyncio
import logging
import sys
from pathlib import Path

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from chatqc.core.config import settings
from chatqc.core.db import dispose_engine, init_models

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def main():
    try:
        logger.info("Initializing database...")
        await init_models()
        logger.info(f"Database ready: {settings.database_url}")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
