"""
Logging configuration for audiostash.

This module sets up the logging system with multiple outputs:
    - Console: coloured, tqdm-compatible output
    - log_full_<timestamp>.log: Complete log of all events (DEBUG and above)
    - log_errors_<timestamp>.log: Only ERROR and CRITICAL level messages
    - conversion_failures_<timestamp>.log: One entry per failed conversion

Everything shown on screen is also saved to file, then filtered into
specialized files.

Usage:
    from audiostash.core.logger import setup_logging, get_logger

    setup_logging(log_dir)          # Call once at startup
    logger = get_logger(__name__)   # Get logger for each module

    logger.info("Converting upload")
    log_conversion_failure(logger, "song.wav", content_hash, "encode", "ffmpeg exited 1")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm


# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log format for console output (compact, tqdm-friendly)
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"

# Prefix of the extra fields picked up by ConversionFailureHandler
FAILURE_EXTRA_PREFIX = "conversion_failed_"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colours the level name on console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.BLUE,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Style.BRIGHT + Fore.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        message = f"{color}{record.levelname}{Style.RESET_ALL}: {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking tqdm progress bars.

    Standard logging to stderr interferes with tqdm's in-place updates.
    tqdm.write() prints the message above any active progress bar.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class ConversionFailureHandler(logging.Handler):
    """
    Handler that captures failed conversions for the failure report file.

    Only records carrying 'conversion_failed_name' are written, in a simple
    human-readable block:

        song.wav
        hash: 3a7bd3e2360a3d29eea436fcfb7e44c735d117c42d1c1835420b6b9942dd4f1b
        stage: encode
        error: ffmpeg exited with status 1

    Use log_conversion_failure() to emit such records.

    Attributes:
        report_path: Path to the report file.
        report_file: Open file handle, set by open().
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """
        Open the report file for writing.

        Called by setup_logging() after the handler is created.
        File is opened in write mode (overwrites existing content).
        """
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, f"{FAILURE_EXTRA_PREFIX}name"):
            return

        if self.report_file is None:
            return

        try:
            name = getattr(record, f"{FAILURE_EXTRA_PREFIX}name", "unknown")
            content_hash = getattr(record, f"{FAILURE_EXTRA_PREFIX}hash", "") or "-"
            stage = getattr(record, f"{FAILURE_EXTRA_PREFIX}stage", "unknown")
            error = getattr(record, f"{FAILURE_EXTRA_PREFIX}error", "")

            self.acquire()
            try:
                self.report_file.write(f"{name}\n")
                self.report_file.write(f"hash: {content_hash}\n")
                self.report_file.write(f"stage: {stage}\n")
                self.report_file.write(f"error: {error}\n\n")
                self.report_file.flush()
            finally:
                self.release()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """
        Close the report file handle.

        Safe to call multiple times.
        """
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path, verbose: bool = False) -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any conversion runs.

    Args:
        log_dir: Directory where log files will be created (created if missing).
        verbose: Show DEBUG messages on the console instead of INFO and above.

    Behavior:
        1. Create log_dir if it doesn't exist
        2. Configure root logger level to DEBUG, dropping existing handlers
        3. Console handler (TqdmLoggingHandler, coloured)
        4. Full log file handler (DEBUG)
        5. Error log file handler (ERROR+, via ErrorOnlyFilter)
        6. Conversion failure report handler

    Thread Safety:
        This function is NOT thread-safe. Call it from the main thread
        before starting any conversions.
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    colorama.init()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Close and remove any existing handlers (setup may run more than once in tests)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_log_path = log_dir / f"log_full_{timestamp}.log"
    full_handler = logging.FileHandler(full_log_path, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_log_path = log_dir / f"log_errors_{timestamp}.log"
    error_handler = logging.FileHandler(error_log_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    failures_path = log_dir / f"conversion_failures_{timestamp}.log"
    failure_handler = ConversionFailureHandler(failures_path)
    failure_handler.open()
    root_logger.addHandler(failure_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        logging.Logger configured by setup_logging().

    Note:
        Loggers obtained before setup_logging() is called have no handlers
        of their own; records propagate to whatever the root logger has.
    """
    return logging.getLogger(name)


def log_conversion_failure(
    logger: logging.Logger,
    display_name: str,
    content_hash: str,
    stage: str,
    error_message: str
) -> None:
    """
    Log a conversion that failed at a given pipeline stage.

    Logs an ERROR level message and attaches the extra fields that
    ConversionFailureHandler writes to the failure report.

    Args:
        logger: The logger to use for the message.
        display_name: Original name of the uploaded file.
        content_hash: Content identity, empty if hashing never completed.
        stage: Pipeline stage that failed (quarantine, identify, encode, ...).
        error_message: Description of why the conversion failed.
    """
    logger.error(
        f"Conversion failed at {stage}: {display_name} - {error_message}",
        extra={
            f"{FAILURE_EXTRA_PREFIX}name": display_name,
            f"{FAILURE_EXTRA_PREFIX}hash": content_hash,
            f"{FAILURE_EXTRA_PREFIX}stage": stage,
            f"{FAILURE_EXTRA_PREFIX}error": error_message,
        }
    )


def shutdown_logging() -> None:
    """
    Flush, close and remove every handler on the root logger.

    Called at application exit, typically in a finally block.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        handler.flush()
        handler.close()
        root_logger.removeHandler(handler)
