"""Script to create the metadata store tables from the SQLAlchemy models."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from yuque_mirror.infrastructure.config.settings import get_settings  # noqa: E402
from yuque_mirror.infrastructure.database.session import create_tables  # noqa: E402
from yuque_mirror.infrastructure.logging import get_logger  # noqa: E402

logger = get_logger()


async def main() -> None:
    """Create metadata store tables."""
    logger.info(f"Creating metadata store tables in {get_settings().SQLITE_URI}")

    try:
        await create_tables()
        logger.info("Metadata store tables created")
    except Exception as e:
        logger.error(f"Error creating metadata store tables: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
