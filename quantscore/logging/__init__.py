from .logger import logger, setup_logging, EngineLogger
from .formatters import JSONFormatter, PrettyFormatter
from .decorators import log_timing

__all__ = ["logger", "setup_logging", "EngineLogger", "JSONFormatter", "PrettyFormatter", "log_timing"]
