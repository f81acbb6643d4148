"""
Logging Config
Colored console output plus a dated log file for the deploy monitor service.
"""
import logging
import sys
import os
from datetime import datetime

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Colors the whole record by level for console output."""

    cyan = "\x1b[36m"
    green = "\x1b[32m"
    yellow = "\x1b[33m"
    red = "\x1b[31m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    COLORS = {
        logging.DEBUG: cyan,
        logging.INFO: green,
        logging.WARNING: yellow,
        logging.ERROR: red,
        logging.CRITICAL: bold_red,
    }

    def format(self, record):
        color = self.COLORS.get(record.levelno)
        fmt = f"{color}{LOG_FORMAT}{self.reset}" if color else LOG_FORMAT
        return logging.Formatter(fmt, datefmt=DATE_FORMAT).format(record)


def setup_logging(level=logging.INFO, log_dir: str = "logs", log_to_file: bool = True):
    """Setup centralized logging: stderr console handler and optional daily file."""
    root_logger = logging.getLogger()

    # Clear existing handlers to prevent duplicate logs
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    # Console (stderr keeps uvicorn's own output ordering intact)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(console_handler)

    if log_to_file:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(
            os.path.join(log_dir, f"deploy_monitor_{datetime.now().strftime('%Y%m%d')}.log")
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    # Route app and server loggers through the root handlers
    for logger_name in ["app", "uvicorn", "uvicorn.error", "uvicorn.access", "main"]:
        named = logging.getLogger(logger_name)
        named.setLevel(level)
        named.propagate = True

    # httpx logs every request at INFO; the poller would flood the log
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    root_logger.debug("Logging initialized (console%s).", " + file" if log_to_file else "")
