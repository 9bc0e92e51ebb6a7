"""
Structured logging for the train watcher using structlog.
Provides JSON or console output with an optional log file.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union
import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Configure structlog on top of the standard library logger.
    
    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path, written in addition to stdout
        debug: Add call-site information to every event
    """
    level = getattr(logging, log_level.upper())
    
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger().setLevel(level)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    
    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())
    
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )
    
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)
    
    structlog.get_logger(__name__).info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.
    
    Args:
        name: Logger name (usually __name__)
        
    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class CycleLogger:
    """
    Specialized logger for watcher cycles with context management.
    """
    
    def __init__(self, name: str = "watcher"):
        self.logger = structlog.get_logger(name)
        self.context = {}
    
    def bind_context(self, **kwargs) -> 'CycleLogger':
        """
        Bind context variables to the logger.
        
        Args:
            **kwargs: Context variables to bind
            
        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self
    
    def log_cycle_start(self, cycle: int, endpoints: int, forced: bool = False) -> None:
        """Log cycle start."""
        self.logger.info(
            "Watch cycle started",
            cycle=cycle,
            endpoints=endpoints,
            forced=forced,
            **self.context
        )
    
    def log_cycle_complete(self, cycle: int, train: int, diffs: int, duration_seconds: float) -> None:
        """Log cycle completion."""
        level = "info" if diffs else "debug"
        getattr(self.logger, level)(
            "Watch cycle completed",
            cycle=cycle,
            train=train,
            diffs=diffs,
            duration_seconds=round(duration_seconds, 3),
            **self.context
        )
    
    def log_fetch_error(self, cycle: int, error: Exception) -> None:
        """Log a failed fetch phase."""
        self.logger.error(
            "Version fetch failed",
            cycle=cycle,
            error=str(error),
            error_type=type(error).__name__,
            service=getattr(error, "service", None),
            url=getattr(error, "url", None),
            **self.context
        )
    
    def log_notification(self, cycle: int, forced: bool, failed: bool) -> None:
        """Log callback invocation."""
        self.logger.debug(
            "Notifying watcher callback",
            cycle=cycle,
            forced=forced,
            failed=failed,
            **self.context
        )
    
    def log_callback_error(self, cycle: int, error: Exception) -> None:
        """Log an exception raised by the caller's callback."""
        self.logger.error(
            "Watcher callback raised",
            cycle=cycle,
            error=str(error),
            error_type=type(error).__name__,
            **self.context
        )
