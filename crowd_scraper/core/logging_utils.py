import logging
from typing import Optional

from crowd_scraper.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Bibliotecas muito verbosas em INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def setup_logging(level: Optional[str] = None) -> None:
    """Configura o logging da aplicação (chamar uma vez no startup)."""
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
