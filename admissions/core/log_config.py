import logging

from admissions.config import settings


def configure_logging(level: str = None):
    """Configures the root logger once at startup"""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # Keep SQL echo out of the application log
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
