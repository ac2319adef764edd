"""Database migration verification utilities."""
import sys
import subprocess
from pathlib import Path

from workbench.config import settings
from workbench.logging_config import get_logger

logger = get_logger(__name__)


def get_alembic_dir() -> Path:
    """Get path to the directory holding alembic.ini."""
    return Path(__file__).parent.parent


def ensure_migrations() -> None:
    """
    Ensure migrations are applied by running alembic upgrade head.

    Uses subprocess to avoid async issues in FastAPI lifespan.
    """
    if not settings.auto_migrate:
        logger.info("AUTO_MIGRATE=false, skipping migration check")
        return

    logger.info("Running database migrations...")

    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=get_alembic_dir(),
            capture_output=True,
            text=True,
            timeout=60,
        )

        if result.returncode != 0:
            logger.error(f"Migration failed: {result.stderr}")
            if settings.require_migrations:
                sys.exit(1)
        else:
            for line in result.stdout.splitlines():
                if line.strip():
                    logger.info(f"  {line}")
            logger.info("Migrations complete")

    except subprocess.TimeoutExpired:
        logger.error("Migration timed out after 60s")
        sys.exit(1)
    except FileNotFoundError:
        logger.warning("alembic not found - skipping migrations")
