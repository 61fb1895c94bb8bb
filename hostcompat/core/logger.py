"""Structured logging with console, rich and file output targets."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class SimpleConsoleRenderer:
    """Simple console renderer with minimal formatting."""

    def __init__(self, show_header: bool = True):
        self.show_header = show_header

    def __call__(self, logger, name, event_dict):
        """Render log event to a simple string."""
        event = event_dict.get("event", "")

        # Format: [HH:MM:SS] LEVEL  message
        if self.show_header:
            timestamp = datetime.now().strftime("%H:%M:%S")
            level = event_dict.get("level", "info").upper()
            output = f"[{timestamp}] {level:<7} {event}"
        else:
            output = str(event)

        skip_keys = {"event", "level", "timestamp", "logger"}
        extras = {k: v for k, v in event_dict.items() if k not in skip_keys}
        if extras:
            extras_str = " ".join(f"{k}={v}" for k, v in extras.items())
            output += f" | {extras_str}"

        return output


# Global logger registry
_loggers: Dict[str, "Logger"] = {}

# Defaults applied to loggers created after setup_logger()
_defaults: Dict[str, Any] = {"level": "INFO", "log_file": None, "rich_console": False}


class Logger:
    """Structured logger bound to one stdlib logger name."""

    def __init__(
        self,
        name: str,
        level: str = "INFO",
        log_file: Optional[str] = None,
        rich_console: bool = False,
    ):
        self.name = name
        self.level = level
        self.log_file = log_file
        self.rich_console = rich_console
        self._logger: Optional[structlog.stdlib.BoundLogger] = None

    def setup(self) -> structlog.stdlib.BoundLogger:
        """Setup structured logger with processors."""
        if self.log_file:
            Path(self.log_file).parent.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.filter_by_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        level = getattr(logging, self.level.upper())
        stdlib_logger = logging.getLogger(self.name)
        stdlib_logger.setLevel(level)
        stdlib_logger.propagate = False
        stdlib_logger.handlers.clear()

        if self.rich_console:
            console_handler: logging.Handler = RichHandler(
                console=Console(stderr=True),
                show_path=False,
                rich_tracebacks=True,
            )
            renderer = SimpleConsoleRenderer(show_header=False)
        else:
            console_handler = logging.StreamHandler(sys.stdout)
            renderer = SimpleConsoleRenderer()
        console_handler.setLevel(level)
        console_handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer))
        stdlib_logger.addHandler(console_handler)

        # File handler - only record ERROR and above
        if self.log_file:
            file_handler = logging.FileHandler(self.log_file, encoding="utf-8")
            file_handler.setLevel(logging.ERROR)
            file_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=structlog.processors.JSONRenderer(),
                )
            )
            stdlib_logger.addHandler(file_handler)

        self._logger = structlog.get_logger(self.name)
        return self._logger

    def get(self) -> structlog.stdlib.BoundLogger:
        """Get the logger instance."""
        if self._logger is None:
            self._logger = self.setup()
        return self._logger

    def bind(self, **kwargs: Any) -> structlog.stdlib.BoundLogger:
        """Bind context to logger."""
        return self.get().bind(**kwargs)


def setup_logger(
    name: str = "hostcompat",
    level: str = "INFO",
    log_file: Optional[str] = None,
    rich_console: bool = False,
) -> structlog.stdlib.BoundLogger:
    """
    Setup and register a logger.

    The given options also become the defaults for every logger already
    registered through get_logger(), so module-level loggers follow the
    runtime configuration.
    """
    level_upper = level.upper()
    if level_upper not in _LEVELS:
        raise ValueError(f"Invalid log level: {level}")

    _defaults.update(level=level_upper, log_file=log_file, rich_console=rich_console)
    for instance in _loggers.values():
        instance.level = level_upper
        instance.log_file = log_file
        instance.rich_console = rich_console
        instance._logger = None
        instance.setup()

    logger = Logger(name, level_upper, log_file, rich_console)
    _loggers[name] = logger
    return logger.setup()


def get_logger(name: str = "hostcompat") -> structlog.stdlib.BoundLogger:
    """Get a logger by name."""
    if name not in _loggers:
        _loggers[name] = Logger(name, **_defaults)
    return _loggers[name].get()


def bind_logger(name: str = "hostcompat", **kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger with bound context."""
    return get_logger(name).bind(**kwargs)


def update_log_level(level: str) -> None:
    """Update log level for all registered loggers."""
    level_upper = level.upper()
    if level_upper not in _LEVELS:
        raise ValueError(f"Invalid log level: {level}")

    _defaults["level"] = level_upper
    for instance in _loggers.values():
        instance.level = level_upper
        stdlib_logger = logging.getLogger(instance.name)
        stdlib_logger.setLevel(getattr(logging, level_upper))
        for handler in stdlib_logger.handlers:
            if isinstance(handler, logging.FileHandler):
                continue
            handler.setLevel(getattr(logging, level_upper))
