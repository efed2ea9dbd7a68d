"""
Logging for the SecureFab Node.

One process-wide setup (console + rotating file under logs/), then a thin
named wrapper per component. Stage threads log under their stage name, so
`logging.levels` in configs/system.json can turn a single stage up to DEBUG
without flooding the rest of the pipeline.
"""
import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from typing import Dict, Any

from utils.constants import LOGS_DIR

DEFAULT_MAX_BYTES = 5 * 1024 * 1024
LOG_FORMAT = '[%(asctime)s] [%(levelname)s] [%(threadName)s/%(name)s] %(message)s'

_SIZE_UNITS = {'': 1, 'B': 1, 'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}


def parse_size(value) -> int:
    """Parse a rotation size ("512KB", "5MB", 1048576) into bytes."""
    match = re.fullmatch(r'\s*(\d+)\s*([KMG]?B?)\s*', str(value).upper())
    if not match:
        return DEFAULT_MAX_BYTES
    return int(match.group(1)) * _SIZE_UNITS[match.group(2)]


def _level(name: Any, default: int = logging.INFO) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


class Logger:
    """Console and rotating-file logger shared by all pipeline components."""

    _configured = False

    @classmethod
    def setup(cls, settings: Dict[str, Any]):
        """
        Global configuration for all Logger instances.

        Args:
            settings: Dictionary with 'level', 'rotation', 'backup_count',
                      'file' and an optional 'levels' map of logger name -> level
        """
        if cls._configured:
            return

        root = logging.getLogger()
        root.setLevel(_level(settings.get('level', 'INFO')))

        for name, level in settings.get('levels', {}).items():
            logging.getLogger(name).setLevel(_level(level))

        if not root.handlers:
            formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            root.addHandler(console_handler)

            if settings.get('file', True):
                try:
                    LOGS_DIR.mkdir(exist_ok=True)
                    file_handler = RotatingFileHandler(
                        LOGS_DIR / "securefab.log",
                        maxBytes=parse_size(settings.get('rotation', '5MB')),
                        backupCount=int(settings.get('backup_count', 5))
                    )
                    file_handler.setFormatter(formatter)
                    root.addHandler(file_handler)
                except OSError as e:
                    root.warning(f"Failed to initialize file logger: {e}")

        cls._configured = True

    def __init__(self, name: str = "SecureFab"):
        self.logger = logging.getLogger(name)

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str):
        self.logger.error(message)

    def exception(self, message: str):
        """Log at ERROR with the active exception's traceback."""
        self.logger.exception(message)

    def debug(self, message: str):
        self.logger.debug(message)

    def critical(self, message: str):
        self.logger.critical(message)
