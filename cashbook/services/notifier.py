import logging
from typing import Protocol

from cashbook.logger_config import logger

SEVERITY_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class Notifier(Protocol):
    def notify(self, message: str, severity: str = "info") -> None:
        ...


class LoggingNotifier:
    """Default notifier: writes notifications to the application log."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def notify(self, message: str, severity: str = "info") -> None:
        self.log.log(SEVERITY_LEVELS.get(severity, logging.INFO), message)
