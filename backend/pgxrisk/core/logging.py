"""Process-wide logging setup. Importing this module configures logging once."""
import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL_ENV = "PGXRISK_LOG_LEVEL"


def configure_logging(level: Optional[Union[str, int]] = None) -> None:
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("pgxrisk").setLevel(level)


configure_logging()
