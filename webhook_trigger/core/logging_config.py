# webhook_trigger/core/logging_config.py

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
