"""
Logging setup for the wizard: a detailed file log and a silent console.
"""
import os
import logging

# Third-party loggers that are chatty at DEBUG/INFO
NOISY_LOGGERS = ("urllib3", "google", "grpc", "asyncio")


def setup_logging(log_file_path: str, level: str = "INFO") -> str:
    """
    Send log records to a file and keep the console for critical messages.

    The console belongs to the interview itself, so only CRITICAL records
    reach it.

    Args:
        log_file_path: Full path to the log file; its directory is created
        level: Level name for the file handler (DEBUG, INFO, ...)

    Returns:
        Path to the log file

    Raises:
        ValueError: ``level`` is not a logging level name
    """
    file_level = logging.getLevelName(level.upper())
    if not isinstance(file_level, int):
        raise ValueError(f"Unknown log level: {level}")

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(log_file_path, mode='a', encoding='utf-8')
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s - %(message)s'))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.CRITICAL)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(file_level, logging.WARNING))

    return log_file_path
