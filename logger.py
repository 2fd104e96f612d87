# logger.py - Centralized logging configuration
#
# Two named loggers:
#   app     request-level events (login, admin actions, CLI)
#   ledger  parent of every ledger.* module logger; money movements end up in logs/ledger.log
import os
import logging
from logging.handlers import RotatingFileHandler

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s [in %(pathname)s:%(lineno)d]"
CONSOLE_FORMAT = "%(name)s - %(levelname)s - %(message)s"

MAX_BYTES = int(os.environ.get("LOG_MAX_BYTES", 1024 * 1024))
BACKUP_COUNT = int(os.environ.get("LOG_BACKUP_COUNT", 10))


def _log_dir(log_dir=None):
    log_dir = log_dir or os.environ.get("LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)
    return log_dir


def setup_logger(name, level=logging.INFO, log_dir=None):
    """
    Named logger writing to <LOG_DIR>/<name>.log.
    Safe to call more than once for the same name.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level)

    file_handler = RotatingFileHandler(
        os.path.join(_log_dir(log_dir), f"{name}.log"),
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    file_handler.setLevel(level)
    logger.addHandler(file_handler)

    if os.environ.get("FLASK_ENV") not in ("production", "testing"):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console_handler)

    return logger


app_logger = setup_logger("app")
ledger_logger = setup_logger("ledger")
