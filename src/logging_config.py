"""
Merchantry Logging Configuration Module.

Provides the structured logging setup and the TradingLogger collaborator
that every Trading API component receives at construction time.
"""

import logging
import sys
import time
from contextlib import contextmanager
from enum import Enum
from functools import wraps
from typing import Any, Optional

import structlog


class LogContext(str, Enum):
    """Standard log contexts for Trading API operations."""

    TOOL_EXECUTION = "tool_execution"
    TRADING_API = "trading_api"
    ITEM_RESOLUTION = "item_resolution"
    LISTING_SEARCH = "listing_search"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"


def setup_logging(
    level: str = "INFO",
    service_name: str = "merchantry",
    version: str = "1.0.0",
) -> Any:
    """
    Setup structlog JSON logging for the server.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        service_name: Name of the server for log identification
        version: Version of the server

    Returns:
        Configured structlog logger
    """
    # stdout belongs to the MCP stdio protocol
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_service_info(service_name, version),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def _add_service_info(service_name: str, version: str):
    """Add service information to structured logs."""

    def processor(logger, method_name, event_dict):
        event_dict["service"] = service_name
        event_dict["version"] = version
        return event_dict

    return processor


class TradingLogger:
    """
    Logger wrapper injected into the Trading API components.

    Exposes the plain debug/info/warning/error methods plus helpers for
    remote calls and MCP tool execution.
    """

    def __init__(self, logger: Any, context: Optional[LogContext] = None):
        self.logger = logger
        self.context = context

    def debug(self, message: str, **kwargs) -> None:
        self._log("debug", message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log("info", message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log("warning", message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log("error", message, **kwargs)

    def external_api_called(
        self, api_name: str, call_name: str, status_code: int, duration: float, **kwargs
    ) -> None:
        """Log a completed remote call."""
        self._log(
            "info",
            "External API call",
            context=LogContext.TRADING_API,
            api_name=api_name,
            call_name=call_name,
            status_code=status_code,
            duration_ms=round(duration * 1000, 2),
            **kwargs,
        )

    def external_api_failed(
        self, api_name: str, call_name: str, error: str, **kwargs
    ) -> None:
        """Log a failed remote call."""
        self._log(
            "error",
            "External API call failed",
            context=LogContext.TRADING_API,
            api_name=api_name,
            call_name=call_name,
            error=error,
            **kwargs,
        )

    def tool_called(self, tool_name: str, **kwargs) -> None:
        """Log tool execution start."""
        self._log(
            "info",
            "Tool execution started",
            context=LogContext.TOOL_EXECUTION,
            tool_name=tool_name,
            **kwargs,
        )

    def tool_completed(self, tool_name: str, duration_ms: float, **kwargs) -> None:
        """Log successful tool completion."""
        log_data = {
            "context": LogContext.TOOL_EXECUTION,
            "tool_name": tool_name,
            "duration_ms": duration_ms,
            "success": True,
        }
        log_data.update(kwargs)
        self._log("info", "Tool execution completed", **log_data)

    def tool_failed(
        self, tool_name: str, error: str, duration_ms: float, **kwargs
    ) -> None:
        """Log tool execution failure."""
        log_data = {
            "context": LogContext.TOOL_EXECUTION,
            "tool_name": tool_name,
            "error": error,
            "duration_ms": duration_ms,
            "success": False,
        }
        log_data.update(kwargs)
        self._log("error", "Tool execution failed", **log_data)

    def _log(self, level: str, message: str, **kwargs) -> None:
        """Internal logging method."""
        if self.context is not None:
            kwargs.setdefault("context", self.context)
        getattr(self.logger, level)(message, **kwargs)


def log_performance(logger: TradingLogger):
    """
    Decorator to log start, completion and duration of an async tool.

    Args:
        logger: TradingLogger instance

    Returns:
        Decorator function
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            func_name = func.__name__
            logger.tool_called(func_name, kwargs_count=len(kwargs))

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration_ms = round((time.time() - start_time) * 1000, 2)
                logger.tool_failed(
                    func_name, str(e), duration_ms, error_type=type(e).__name__
                )
                raise

            duration_ms = round((time.time() - start_time) * 1000, 2)
            logger.tool_completed(
                func_name, duration_ms, result_type=type(result).__name__
            )
            return result

        return wrapper

    return decorator


@contextmanager
def log_context(**context_vars):
    """
    Context manager for adding structured context to logs.

    Args:
        **context_vars: Context variables to add to all logs in this context
    """
    with structlog.contextvars.bound_contextvars(**context_vars):
        yield


def get_trading_logger(
    service_name: str = "merchantry",
    level: str = "INFO",
    version: str = "1.0.0",
    context: Optional[LogContext] = None,
) -> TradingLogger:
    """
    Get a configured TradingLogger instance.

    Args:
        service_name: Name of the server
        level: Log level
        version: Server version
        context: Default context for this logger

    Returns:
        Configured TradingLogger instance
    """
    base_logger = setup_logging(level=level, service_name=service_name, version=version)
    return TradingLogger(base_logger, context)


def setup_server_logging(config) -> TradingLogger:
    """
    Setup server logging from configuration object.

    Args:
        config: Configuration object with log_level, server_name, and version

    Returns:
        Configured TradingLogger instance
    """
    return get_trading_logger(
        service_name=config.server_name,
        level=config.log_level,
        version=getattr(config, "version", "1.0.0"),
    )
