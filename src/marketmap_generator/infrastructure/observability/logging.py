"""
Structured logging infrastructure for marketmap-generator.
Provides consistent, machine-readable logs across the generation run.

Log Structure:
    {
        "app": "marketmap-generator",  # Application identifier
        "layer": "processing",          # Architectural layer
        "component": "feed-transforms", # Specific component/service
        "module": "...",                # Python module (optional)
        "transform": "invert_or_drop",  # Domain context
        "event": "feeds_inverted",      # What happened
        ...
    }

Architectural Layers:
    - infrastructure: Cross-cutting (config loading)
    - storage: Provider data store
    - generation: Querier and generator orchestration
    - processing: Feed and market map transforms, aggregation
    - cli: Command line entry points
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict

APP_NAME = "marketmap-generator"

Layer = Literal["infrastructure", "storage", "generation", "processing", "cli"]


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the application identifier to every log entry."""
    event_dict["app"] = APP_NAME
    return event_dict


def add_severity_level(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Add severity level for cloud logging compatibility.
    Maps Python log levels to standard severity levels.
    """
    level = event_dict.get("level")
    if level:
        severity_map = {
            "debug": "DEBUG",
            "info": "INFO",
            "warning": "WARNING",
            "error": "ERROR",
            "critical": "CRITICAL",
        }
        event_dict["severity"] = severity_map.get(level, "INFO")
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON. If False, use human-readable format (dev mode).
        include_timestamp: Whether to include ISO timestamps in logs

    Usage:
        >>> from marketmap_generator.infrastructure.observability import setup_logging
        >>> setup_logging(level="DEBUG", json_logs=False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # Logs go to stderr so generated artifacts can be piped from stdout
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    logging.root.setLevel(log_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_log_level,
        add_severity_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    name: str | None = None,
    layer: Layer | None = None,
    component: str | None = None,
    **initial_context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance with architectural context.

    Args:
        name: Logger name (typically __name__ of the calling module)
        layer: Architectural layer (storage, generation, processing, ...)
        component: Specific component within the layer
        **initial_context: Additional context key-value pairs to bind to logger

    Returns:
        Configured structlog logger with bound context

    Usage:
        >>> log = get_logger(__name__, layer="processing", component="aggregator")
        >>> log.info("markets_aggregated", markets=120)
    """
    context: dict[str, Any] = {}
    if layer:
        context["layer"] = layer
    if component:
        context["component"] = component
    if name:
        context["module"] = name
    context.update(initial_context)

    # Context is passed as initial values so the logger is only assembled on
    # first use, after setup_logging() has run for module-level loggers.
    if name:
        return structlog.get_logger(name, **context)
    return structlog.get_logger(**context)


# ============================================================================
# Layer-Specific Logger Factories
# ============================================================================


def get_infrastructure_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for infrastructure layer (configuration loading).

    Usage:
        >>> log = get_infrastructure_logger("config-loader", path="config.yaml")
        >>> log.info("config_loaded")
    """
    return get_logger(
        "infrastructure",
        layer="infrastructure",
        component=component,
        **context,
    )


def get_storage_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for storage layer (provider data store).

    Usage:
        >>> log = get_storage_logger("memory-provider-store")
        >>> log.info("rows_read", rows=1000)
    """
    return get_logger(
        "storage",
        layer="storage",
        component=component,
        **context,
    )


def get_generation_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for generation layer (querier, generator).

    Usage:
        >>> log = get_generation_logger("querier")
        >>> log.info("feeds_queried", feeds=5000)
    """
    return get_logger(
        "generation",
        layer="generation",
        component=component,
        **context,
    )


def get_processing_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for processing layer (transforms, aggregation).

    Args:
        component: Component name (e.g., "feed-transforms", "aggregator")
        **context: Additional context

    Usage:
        >>> log = get_processing_logger("feed-transforms", transform="invert_or_drop")
        >>> log.info("transform_started", feeds=5000)
    """
    return get_logger(
        "processing",
        layer="processing",
        component=component,
        **context,
    )


def get_cli_logger(
    component: str = "cli",
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for command line entry points.

    Usage:
        >>> log = get_cli_logger(command="generate")
        >>> log.info("market_map_written", path="market-map.json")
    """
    return get_logger(
        "cli",
        layer="cli",
        component=component,
        **context,
    )
