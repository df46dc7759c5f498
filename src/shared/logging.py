"""Logging for the storefront service.

Every record, whether it comes from our structlog loggers or from a library
logging through stdlib (uvicorn, boto3, httpx, stripe), is rendered by the
same structlog processor chain: JSON lines in production and staging, a
Rich-formatted console everywhere else.
"""

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass
from pathlib import Path

import structlog

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}
_JSON_ENVIRONMENTS = frozenset({"production", "staging"})
_QUIET_LIBRARIES = ("urllib3", "botocore", "boto3", "httpx", "httpcore", "stripe", "asyncio")

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


@dataclass(frozen=True)
class LoggingSettings:
    environment: str = "development"
    level: str = "DEBUG"
    to_file: bool = True
    directory: Path = Path("logs")

    @classmethod
    def from_env(cls) -> "LoggingSettings":
        environment = (os.getenv("ENV") or os.getenv("ENVIRONMENT") or "development").lower()
        return cls(
            environment=environment,
            level=os.getenv("LOG_LEVEL") or _LEVELS.get(environment, "INFO"),
            to_file=os.getenv("LOG_TO_FILE", "1") != "0",
            directory=Path(os.getenv("LOG_DIR", "logs")),
        )

    @property
    def json(self) -> bool:
        return self.environment in _JSON_ENVIRONMENTS


def _common_processors() -> list:
    """Processors applied to structlog events and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _renderer(settings: LoggingSettings):
    if settings.json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=4),
    )


def _formatter(settings: LoggingSettings) -> structlog.stdlib.ProcessorFormatter:
    final = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if settings.json:
        final.append(structlog.processors.format_exc_info)
    final.append(_renderer(settings))
    return structlog.stdlib.ProcessorFormatter(foreign_pre_chain=_common_processors(), processors=final)


def _handlers(settings: LoggingSettings) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    if not settings.to_file:
        return [console]

    settings.directory.mkdir(parents=True, exist_ok=True)
    everything = logging.handlers.RotatingFileHandler(
        settings.directory / "storefront.log", maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    errors = logging.handlers.RotatingFileHandler(
        settings.directory / "storefront_error.log", maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    errors.setLevel(logging.ERROR)
    return [console, everything, errors]


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Install handlers on the root logger and point structlog at them. Safe to call again."""
    settings = settings or LoggingSettings.from_env()
    formatter = _formatter(settings)

    root = logging.getLogger()
    root.handlers = []
    root.setLevel(settings.level)
    for handler in _handlers(settings):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_common_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            ),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request(request_id: str, **fields) -> None:
    """Start a fresh log context for one request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **fields)
