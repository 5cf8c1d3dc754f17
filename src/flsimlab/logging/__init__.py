"""Simulation logging for the FL lab.

Builds the LogEntry records shown in the dashboard log panel and mirrors
each of them to a round-aware stdlib logger.
"""

import logging
import os
from datetime import datetime
from typing import Callable, Dict, Optional

from flsimlab.types import LogEntry, LogLevel


TIMESTAMP_FORMAT = "%H:%M:%S"


def format_timestamp(moment: datetime) -> str:
    """Format a wall-clock time as 24-hour HH:MM:SS"""
    return moment.strftime(TIMESTAMP_FORMAT)


class SimulationLogger:
    """Logger for a simulation engine.

    Provides:
    - LogEntry construction with HH:MM:SS timestamps
    - Round-aware console output
    - Optional plain-text log file
    """

    def __init__(
        self,
        name: str,
        log_dir: Optional[str] = None,
        level: int = logging.INFO,
        enable_console: bool = True,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize simulation logger.

        Args:
            name: Logger name
            log_dir: Directory for a log file (None disables file logging)
            level: Minimum stdlib log level for the mirror
            enable_console: Enable console output
            clock: Source of wall-clock time for entry timestamps
        """
        self.name = name
        self.log_dir = log_dir
        self.level = level
        self.clock = clock or datetime.now
        self.current_round = 0

        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False
        self.logger.handlers = []  # Clear existing handlers

        self.formatter = logging.Formatter(
            '%(asctime)s | %(name)s | R%(round)s | %(levelname)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if enable_console:
            self._add_handler(logging.StreamHandler())
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            log_file = os.path.join(log_dir, f"{name}.log")
            self._add_handler(logging.FileHandler(log_file, mode='a'))
        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

    def _add_handler(self, handler: logging.Handler) -> None:
        handler.setLevel(self.level)
        handler.setFormatter(self.formatter)
        self.logger.addHandler(handler)

    def set_round(self, round_num: int) -> None:
        """Set current round number shown in mirrored lines"""
        self.current_round = round_num

    def record(
        self,
        level: LogLevel,
        message: str,
        moment: Optional[datetime] = None,
        round_num: Optional[int] = None
    ) -> LogEntry:
        """Create a log entry and mirror it to the stdlib logger.

        Args:
            level: Entry level
            message: Free-text message
            moment: Time of the entry (defaults to the logger clock)
            round_num: Round shown in the mirrored line (defaults to
                current_round)

        Returns:
            The new LogEntry
        """
        entry = LogEntry(
            timestamp=format_timestamp(moment or self.clock()),
            level=level,
            message=message
        )
        self.logger.log(level.logging_level, message,
                        extra={'round': self._round(round_num)})
        return entry

    def _round(self, round_num: Optional[int]) -> int:
        return self.current_round if round_num is None else round_num

    def info(self, message: str) -> LogEntry:
        return self.record(LogLevel.INFO, message)

    def warn(self, message: str) -> LogEntry:
        return self.record(LogLevel.WARN, message)

    def debug(self, message: str) -> LogEntry:
        return self.record(LogLevel.DEBUG, message)

    def exception(self, message: str, round_num: Optional[int] = None) -> None:
        """Log an error with traceback; not part of the simulation trace"""
        self.logger.exception(message, extra={'round': self._round(round_num)})

    def close(self) -> None:
        """Close log handlers"""
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)


class SimLoggerFactory:
    """Factory for creating simulation loggers with consistent configuration"""

    _loggers: Dict[str, SimulationLogger] = {}
    _log_dir: Optional[str] = None
    _default_level: int = logging.INFO

    @classmethod
    def configure(
        cls,
        log_dir: Optional[str] = None,
        default_level: int = logging.INFO
    ) -> None:
        """Configure factory settings.

        Args:
            log_dir: Base log directory (None keeps console only)
            default_level: Default log level
        """
        cls._log_dir = log_dir
        cls._default_level = default_level

    @classmethod
    def get_logger(
        cls,
        name: str,
        level: Optional[int] = None
    ) -> SimulationLogger:
        """Get or create a logger"""
        if name not in cls._loggers:
            cls._loggers[name] = SimulationLogger(
                name=name,
                log_dir=cls._log_dir,
                level=level or cls._default_level
            )
        return cls._loggers[name]

    @classmethod
    def get_engine_logger(cls) -> SimulationLogger:
        """Get simulation engine logger"""
        return cls.get_logger("flsimlab.engine")

    @classmethod
    def close_all(cls) -> None:
        """Close all loggers"""
        for logger in cls._loggers.values():
            logger.close()
        cls._loggers.clear()


__all__ = [
    'SimulationLogger',
    'SimLoggerFactory',
    'format_timestamp',
    'TIMESTAMP_FORMAT'
]
