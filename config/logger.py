import logging
import sys
from pathlib import Path
from typing import Optional

from config.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(step_name)s] %(message)s'

_initialized = False

# Module-level logger shared by every wizard component.
# Handlers are attached by setup_logging() once at process start.
logger = logging.getLogger('feedback_wizard')


class _StepNameDefault(logging.Filter):
    """Give records logged without a context adapter an empty step name."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'step_name'):
            record.step_name = '-'
        return True


def setup_logging(level: Optional[int] = None, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configure the wizard logger with console output and a ``wizard.log``
    file under ``log_dir`` (``Config.LOG_DIR`` by default).

    Safe to call more than once; later calls return the configured logger.
    """
    global _initialized
    if _initialized and logger.handlers:
        return logger

    if level is None:
        level = logging.getLevelName(Config.LOG_LEVEL.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    step_default = _StepNameDefault()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    console.addFilter(step_default)
    logger.addHandler(console)

    try:
        logs_dir = Path(log_dir or Config.LOG_DIR)
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(logs_dir / 'wizard.log'), encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(step_default)
        logger.addHandler(file_handler)
    except OSError as e:  # pragma: no cover - filesystem issues
        logger.error(f"Failed to create log file handler: {e}")

    _initialized = True
    return logger
