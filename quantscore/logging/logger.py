import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict

import coloredlogs

from quantscore.logging.formatters import JSONFormatter, PrettyFormatter

ROOT_LOGGER_NAME = "quantscore"
CONSOLE_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


class EngineLogger:
    """Logger with context support, rooted at the quantscore namespace"""

    def __init__(self, name: str = ROOT_LOGGER_NAME):
        self.logger = logging.getLogger(name)
        self._context: Dict[str, Any] = {}
        self._setup_done = False

    def setup(self, config) -> None:
        """Attach handlers based on config; idempotent"""
        if self._setup_done:
            return

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(config.log_level)
        root.propagate = False  # Prevent double logging if the root logger is configured
        root.handlers.clear()

        if config.env == "production":
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(JSONFormatter())
            root.addHandler(console)
        else:
            coloredlogs.install(
                level=config.log_level,
                logger=root,
                fmt=CONSOLE_FORMAT,
                stream=sys.stdout,
            )
            # coloredlogs swaps in its own formatter; keep the context suffix
            for handler in root.handlers:
                handler.setFormatter(PrettyFormatter(inner=handler.formatter))

        if config.log_file:
            directory = os.path.dirname(config.log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            file_handler = RotatingFileHandler(
                config.log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
            )
            file_handler.setFormatter(JSONFormatter())
            file_handler.setLevel(logging.DEBUG)
            root.addHandler(file_handler)

        self._setup_done = True

    def with_context(self, **kwargs) -> "EngineLogger":
        """Return logger with additional context"""
        new_logger = EngineLogger(self.logger.name)
        new_logger.logger = self.logger
        new_logger._context = {**self._context, **kwargs}
        new_logger._setup_done = self._setup_done
        return new_logger

    def _log(self, level: int, msg: str, exc_info: bool = False, **kwargs):
        extra_data = {**self._context, **kwargs}
        extra = {"extra_data": extra_data} if extra_data else {}
        self.logger.log(level, msg, extra=extra, exc_info=exc_info)

    def debug(self, msg: str, **kwargs):
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs):
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, **kwargs)

    def exception(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, exc_info=True, **kwargs)

    def result(self, symbol: str, **kwargs):
        """Log a finished analysis"""
        self.info(f"RESULT: {symbol}", result=True, **kwargs)


# Singleton
logger = EngineLogger()


def setup_logging(config) -> None:
    """Initialize logging"""
    logger.setup(config)
