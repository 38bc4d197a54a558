"""
Logging Configuration
====================

structlog on top of stdlib logging. Render sessions bind ``request_id`` and
``component`` on their loggers; HTTP requests bind ``http_request_id`` through
contextvars so transport lines can be matched to the X-Request-ID header.
"""

import logging
import logging.config
import sys
from typing import Dict, Any, Optional
import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .settings import Settings, get_settings

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = {
    "playwright": "WARNING",
    "asyncio": "WARNING",
    "redis": "WARNING",
    "uvicorn.access": "WARNING",
}


class ServiceContext:
    """Processor stamping every event with the service name and version."""

    def __init__(self, settings: Settings):
        self.service = settings.app_name
        self.version = settings.app_version

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", self.service)
        event_dict.setdefault("version", self.version)
        return event_dict


def build_processors(settings: Settings) -> list[Processor]:
    """Processor chain; the renderer depends on the environment."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.environment == "production":
        processors.append(ServiceContext(settings))
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.environment != "testing"))
    return processors


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog and the stdlib handlers it writes through."""
    settings = settings or get_settings()

    if settings.environment != "testing":
        (settings.storage_path / "logs").mkdir(parents=True, exist_ok=True)

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(get_logging_config(settings))


def get_logging_config(settings: Settings) -> Dict[str, Any]:
    """stdlib dictConfig for the console and rotating file handlers."""
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "json" if settings.environment == "production" else "plain",
            "stream": sys.stdout,
        },
    }
    if settings.environment != "testing":
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": settings.log_level,
            "formatter": "json",
            "filename": str(settings.storage_path / "logs" / "url2img.log"),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "delay": True,
        }

    loggers: Dict[str, Any] = {
        "": {"level": settings.log_level, "handlers": list(handlers), "propagate": False},
        "url2img": {"level": settings.log_level, "propagate": True},
    }
    for name, level in QUIET_LOGGERS.items():
        loggers[name] = {"level": level, "propagate": True}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            # structlog has already rendered the event into the message
            "plain": {"format": "%(message)s"},
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(name)s %(levelname)s %(message)s",
                "static_fields": {"service": settings.app_name},
            },
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str) -> None:
    """Attach an HTTP request id to every log line emitted in this context."""
    structlog.contextvars.bind_contextvars(http_request_id=request_id)


def clear_request_context() -> None:
    structlog.contextvars.unbind_contextvars("http_request_id")


setup_logging()
