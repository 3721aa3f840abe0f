import logging

from commission_engine.core.config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None):
    """Apply LOG_LEVEL to the root logger once per process"""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # SQL echo only when explicitly debugging
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
