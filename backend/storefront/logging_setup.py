"""Process-wide logging configuration for the API and the CLI scripts."""
import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_configured = False


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """Attach a console handler (and optionally a rotating file handler) to the root logger.

    Safe to call more than once; handlers are only installed the first time,
    later calls just adjust the level.
    """
    global _configured
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    numeric = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric)
    if not _configured:
        formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)
        log_file = log_file or os.getenv('LOG_FILE')
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        _configured = True
    return logging.getLogger('storefront')
