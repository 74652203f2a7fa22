"""Settings, option tables, messages and logging setup for the wizard."""

from config.config import Config
from config import constants
from config.constants import SnapshotKey
from config.logger import logger, setup_logging
from config.strings import Strings

__all__ = [
    "Config",
    "constants",
    "SnapshotKey",
    "logger",
    "setup_logging",
    "Strings",
]
