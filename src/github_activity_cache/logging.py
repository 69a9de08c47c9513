"""Centralized logging configuration using loguru.

Provides:
- Levels and file output driven by LoggingConfig
- CLI flag override (--verbose/--quiet)
- Standard library interception, with a separate level for httpx/httpcore
- Repository and sync-mode context in every console line
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

    from github_activity_cache.config import LoggingConfig

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# githubkit talks to GitHub through httpx
HTTP_LOGGERS = ("httpx", "httpcore")

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[name]}:{function}:{line} | {extra} | {message}"
)

_configured = False


class InterceptHandler(logging.Handler):
    """Route standard library records (httpx, httpcore) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Report the stdlib caller, not the logging module
        frame = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def resolve_level(level: LogLevel, *, verbose: bool = False, quiet: bool = False) -> LogLevel:
    """Apply the CLI flags to the configured level. verbose wins over quiet."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


def _console_format(record: Record) -> str:
    extra = record["extra"]
    source = "{extra[name]}" if "name" in extra else "{name}"
    context = ""
    if "repo" in extra:
        context += " [{extra[repo]}]"
    if "sync_mode" in extra:
        context += " ({extra[sync_mode]})"
    return (
        "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
        f"<cyan>{source}</cyan>{context} - <level>{{message}}</level>\n{{exception}}"
    )


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    config: LoggingConfig | None = None,
) -> Logger:
    """Configure logging for the application.

    Args:
        level: Base log level from settings
        verbose: Force DEBUG
        quiet: Force WARNING
        config: File sink and HTTP library options (defaults: no file)

    Returns:
        Configured logger instance
    """
    global _configured

    effective_level = resolve_level(level, verbose=verbose, quiet=quiet)

    logger.remove()
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_console_format,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )

    if config is not None and config.log_file:
        logger.add(
            config.log_file,
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation=config.rotation,
            retention=config.retention,
            compression="gz",
            serialize=config.serialize,
            filter=lambda record: "name" in record["extra"],
        )

    http_level = config.http_log_level if config is not None else None
    if http_level is None:
        http_level = "DEBUG" if effective_level in ("TRACE", "DEBUG") else "WARNING"
    _intercept_stdlib_logging(http_level)

    _configured = True
    return logger


def _intercept_stdlib_logging(http_level: str) -> None:
    """Send every stdlib record to loguru, HTTP libraries at ``http_level``."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)




def get_logger(name: str) -> Logger:
    """Get a logger with the given name bound as context.

    Usage:
        from github_activity_cache.logging import get_logger
        logger = get_logger(__name__)

        logger = logger.bind(repo="octo-org/widgets")
        logger.info("Fetching commits")  # Logs with repo context

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance with name bound
    """
    return logger.bind(name=name)


def bind_repo(name_with_owner: str) -> Logger:
    """Bind repository context to logger.

    Args:
        name_with_owner: Repository in owner/name form

    Returns:
        Logger with repo context bound
    """
    return logger.bind(name="sync", repo=name_with_owner)


class LogContext:
    """Context manager for temporary log context binding.

    Usage:
        with LogContext(sync_mode="incremental"):
            logger.info("Fetching")  # Has sync_mode context
        logger.info("After")  # No longer has context
    """

    def __init__(self, **context: Any) -> None:
        """Initialize with context to bind."""
        self._context = context
        self._token: Any = None

    def __enter__(self) -> Logger:
        """Enter context and bind values."""
        self._token = logger.contextualize(**self._context)
        self._token.__enter__()
        return logger

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context and unbind values."""
        if self._token:
            self._token.__exit__(exc_type, exc_val, exc_tb)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Reset logging state (primarily for testing)."""
    global _configured
    logger.remove()
    _configured = False
