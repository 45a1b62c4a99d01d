"""Logging configuration utilities."""

import logging
import sys
from typing import Optional

import structlog
from structlog.contextvars import bind_contextvars

from solution_deployer.deploy.models import ImportUpdateEvent


SENSITIVE_KEYS = {
    "password",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "auth",
    "client_secret",
    "connection_string",
}


def _redact_sensitive(_, __, event_dict: dict) -> dict:
    """Redact sensitive fields in the structured log."""
    for key in list(event_dict.keys()):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = "[REDACTED]"
    return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging."""

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_sensitive,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def bind_deployment_context(config_file: Optional[str] = None, run_id: Optional[str] = None) -> None:
    """Bind correlation fields for deployment logs using contextvars."""
    if config_file:
        bind_contextvars(configFile=config_file)
    if run_id:
        bind_contextvars(runId=run_id)


def log_progress_event(event: ImportUpdateEvent) -> None:
    """Progress subscriber that writes each event to the structured log."""
    details = event.solution_details
    structlog.get_logger("solution_deployer.progress").info(
        event.message,
        solution=details.solution_name,
        status=details.status.value,
        installed_version=details.installed_version,
        package_version=details.package_version,
        event_time=event.timestamp.isoformat(),
    )
