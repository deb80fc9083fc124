"""
Logging configuration.
"""
import logging
import sys
from drugclaim.api.core.config import settings


def setup_logging():
    """Configure logging for the application."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Set third-party loggers to WARNING
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logging.getLogger("drugclaim")


def short_token(holder_token) -> str:
    """Abbreviate a holder token for log lines."""
    if not holder_token:
        return "-"
    return f"{holder_token[:8]}..."


logger = setup_logging()
