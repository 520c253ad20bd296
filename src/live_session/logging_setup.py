"""Console and file logging for the live session client and its demos."""

import logging
import os
from datetime import datetime

LOG_FORMAT = "%(asctime)s:%(name)s:%(levelname)s:%(message)s"


def configure_logging(level: str = "INFO", log_dir: str | None = None) -> logging.Logger:
    """Set up logging (console, plus a timestamped file when ``log_dir`` is given)."""
    level = level.upper()
    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(console)

    if log_dir:
        ## Add folder for logging
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        file_handler = logging.FileHandler(
            os.path.join(log_dir, f"{timestamp}_live_session.log"), mode="w", encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    return logging.getLogger("src.live_session")
