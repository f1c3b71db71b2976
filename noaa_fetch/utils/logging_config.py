# ABOUTME: Logging configuration for the noaa-fetch command line
# ABOUTME: Sets up the root logger with a console handler and an optional file handler

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_main_logger(log_file=None, log_level=logging.INFO):
    """
    Setup the main logger for console and, optionally, file output.

    Args:
        log_file (str or Path, optional): Path to a log file; console only when None
        log_level (int, optional): Console logging level. Defaults to logging.INFO.

    Returns:
        logging.Logger: The configured root logger
    """
    # Silence noisy third-party loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        # File handler (DEBUG level to capture all details)
        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)
        logging.info(f"Main logger initialized with log file: {log_file}")

    logging.debug(f"Console logging level: {logging.getLevelName(log_level)}")
    return root_logger
