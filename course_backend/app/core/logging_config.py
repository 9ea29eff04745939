"""
Logging setup

Console output always; when LOG_FILE_NAME is set, two rotating files under
LOG_DIR as well: {name}_logfile.log (everything from INFO) and
{name}_error.log (ERROR and above).
"""
import logging
import os
from logging.handlers import RotatingFileHandler

from app.core.config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    if not settings.LOG_FILE_NAME:
        return

    root = logging.getLogger()
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    targets = (
        (f"{settings.LOG_FILE_NAME}_logfile.log", logging.INFO),
        (f"{settings.LOG_FILE_NAME}_error.log", logging.ERROR),
    )
    for filename, handler_level in targets:
        path = os.path.join(settings.LOG_DIR, filename)
        if any(getattr(h, "baseFilename", None) == os.path.abspath(path) for h in root.handlers):
            continue
        handler = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.getLogger(__name__).info(f"File logging enabled in {settings.LOG_DIR}/")
