"""Process-wide logging setup."""
import logging
import sys

from app.core.config import Settings

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure the root logger once, at application startup."""
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=LOG_FORMAT, stream=sys.stdout)

    for noisy in ("httpcore", "httpx", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    if not settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
