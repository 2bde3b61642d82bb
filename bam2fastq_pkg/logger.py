"""
Logging configuration for the BAM to FASTQ conversion package.

Provides structured logging with multiple outputs:
- Console output (colored, user-friendly) on stderr, since stdout may carry FASTQ
- File output (detailed JSON lines, for debugging)
"""

import sys
import time
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, Dict
from threading import Lock

import structlog


LOGGER_NAME = "bam2fastq"


# ANSI color codes for console output
class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    MAGENTA = '\033[95m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'


def add_log_level_colors(_, level: str, event_dict: dict) -> dict:
    """Add colors to log level in console output."""
    level_colors = {
        "debug": Colors.GRAY,
        "info": Colors.BLUE,
        "warning": Colors.YELLOW,
        "error": Colors.RED,
        "critical": Colors.RED + Colors.BOLD,
    }

    color = level_colors.get(level.lower(), "")
    if color:
        event_dict["level"] = f"{color}{level.upper()}{Colors.RESET}"
    else:
        event_dict["level"] = level.upper()

    return event_dict


def format_file_context(logger, method_name, event_dict: dict) -> dict:
    """
    Format input file and category information for console logs.

    Creates a prefix like: [reads.bam pairing]
    """
    file_context = event_dict.get("file_context")
    category = event_dict.get("category")

    context_parts = []

    if file_context:
        if len(file_context) > 40:
            file_context = "..." + file_context[-37:]
        context_parts.append(f"{Colors.MAGENTA}{file_context}{Colors.RESET}")

    if category:
        category_color = {
            'source': Colors.CYAN,
            'record': Colors.YELLOW,
            'pairing': Colors.GREEN,
            'output': Colors.BLUE,
        }.get(category, Colors.GRAY)
        context_parts.append(f"{category_color}{category}{Colors.RESET}")

    if context_parts:
        event_dict["context"] = f"[{' '.join(context_parts)}]"

    return event_dict


def _base_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _configure_console(console_level: str) -> None:
    structlog.configure(
        processors=_base_processors() + [
            format_file_context,
            add_log_level_colors,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, console_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


class ConversionLogger:
    """
    Logger for the conversion package.

    Features:
    - Console output on stderr
    - Optional JSON file log
    - Structured issue store (warnings/errors raised during a run)
    - Named timers
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        """Singleton pattern - only one logger instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.issues = []
        self._issues_lock = Lock()

        # Holds the structlog logger instance once setup() ran
        self.logger = None
        self.log_file: Optional[Path] = None

        self._timers: Dict[str, float] = {}
        self._timers_lock = Lock()

        self._initialized = True

    def setup(
        self,
        console_level: str = "INFO",
        log_file: Optional[Path] = None,
        clear_previous_issues: bool = True
    ):
        """
        Set up logging handlers.

        Args:
            console_level: Level for console output (DEBUG, INFO, WARNING, ERROR)
            log_file: Path to detailed JSON log file (optional, auto-incremented if it exists)
            clear_previous_issues: Clear issues recorded by previous runs (default: True)
        """
        if clear_previous_issues:
            self.clear_issues()

        self.log_file = None

        if log_file:
            from bam2fastq_pkg.utils.file_handler import get_incremented_path

            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_file = get_incremented_path(log_file)
            self.log_file = log_file

            processors = [
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ]

            structlog.configure(
                processors=processors,
                wrapper_class=structlog.stdlib.BoundLogger,
                context_class=dict,
                logger_factory=structlog.stdlib.LoggerFactory(),
                cache_logger_on_first_use=False,
            )

            stdlib_logger = logging.getLogger(LOGGER_NAME)
            for handler in stdlib_logger.handlers:
                handler.close()
            stdlib_logger.handlers.clear()
            stdlib_logger.setLevel(logging.DEBUG)
            stdlib_logger.propagate = False

            file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=structlog.processors.JSONRenderer(),
                    foreign_pre_chain=processors[:-1],
                )
            )
            stdlib_logger.addHandler(file_handler)

            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, console_level.upper(), logging.INFO))
            console_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
                    foreign_pre_chain=processors[:-1],
                )
            )
            stdlib_logger.addHandler(console_handler)
        else:
            # Drop file handlers left by a previous setup()
            stdlib_logger = logging.getLogger(LOGGER_NAME)
            for handler in stdlib_logger.handlers:
                handler.close()
            stdlib_logger.handlers.clear()

            _configure_console(console_level)

        self.logger = structlog.get_logger(LOGGER_NAME)

        if log_file:
            self.debug(f"Detailed log file: {log_file}")

    def reconfigure_level(self, console_level: str = "INFO"):
        """
        Change the console level after setup (e.g. after reading a config file).

        The file log, if any, keeps logging at DEBUG.
        """
        stdlib_logger = logging.getLogger(LOGGER_NAME)

        if stdlib_logger.handlers:
            for handler in stdlib_logger.handlers:
                if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                    handler.setLevel(getattr(logging, console_level.upper(), logging.INFO))
        else:
            _configure_console(console_level)
            self.logger = structlog.get_logger(LOGGER_NAME)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional structured context."""
        if self.logger:
            self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional structured context."""
        if self.logger:
            self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message and record it as an issue."""
        if self.logger:
            self.logger.warning(message, **kwargs)
        with self._issues_lock:
            self.issues.append(('WARNING', message))

    def error(self, message: str, **kwargs):
        """Log error message and record it as an issue."""
        if self.logger:
            self.logger.error(message, **kwargs)
        with self._issues_lock:
            self.issues.append(('ERROR', message))

    def critical(self, message: str, **kwargs):
        """Log critical message and record it as an issue."""
        if self.logger:
            self.logger.critical(message, **kwargs)
        with self._issues_lock:
            self.issues.append(('CRITICAL', message))

    def add_issue(self, level: str, category: str, message: str, details: dict = None):
        """
        Add a structured issue and log it once.

        Args:
            level: ERROR, WARNING, INFO
            category: source, record, pairing, output
            message: Human-readable description
            details: Additional context (file, counts, read names...)
        """
        issue = {
            'timestamp': datetime.now().isoformat(),
            'level': level,
            'category': category,
            'message': message,
            'details': details or {}
        }
        with self._issues_lock:
            self.issues.append(issue)

        log_kwargs = {'category': category}
        if details:
            log_kwargs.update(details)

        # Use the structlog logger directly so the issue is not stored twice
        if self.logger:
            if level == 'ERROR':
                self.logger.error(message, **log_kwargs)
            elif level == 'WARNING':
                self.logger.warning(message, **log_kwargs)
            else:
                self.logger.info(message, **log_kwargs)

    def structured_issues(self, level: Optional[str] = None) -> list:
        """Return the dict-shaped issues, optionally filtered by level."""
        with self._issues_lock:
            found = [i for i in self.issues if isinstance(i, dict)]
        if level:
            found = [i for i in found if i['level'] == level]
        return found

    def start_timer(self, name: str):
        """Start a named timer."""
        with self._timers_lock:
            self._timers[name] = time.time()

    def stop_timer(self, name: str) -> float:
        """
        Stop a named timer and return elapsed time in seconds.

        Raises:
            KeyError: If timer with given name was never started
        """
        end_time = time.time()
        with self._timers_lock:
            if name not in self._timers:
                raise KeyError(f"Timer '{name}' was never started")
            elapsed = end_time - self._timers.pop(name)
            return elapsed

    def clear_issues(self):
        """Clear all recorded issues."""
        with self._issues_lock:
            self.issues.clear()

    def __enter__(self):
        self.clear_issues()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Issues are kept for inspection after the block
        return False


def get_logger() -> ConversionLogger:
    """Get the singleton logger instance."""
    return ConversionLogger()


def setup_logging(
    console_level: str = "INFO",
    log_file: Optional[Path] = None,
):
    """
    Set up logging for the package.

    Args:
        console_level: Console output level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to detailed log file
    """
    logger = get_logger()
    logger.setup(console_level, log_file)
    return logger


__all__ = ['ConversionLogger', 'get_logger', 'setup_logging']
