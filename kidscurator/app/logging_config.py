from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

import structlog
from structlog.typing import EventDict, Processor

from kidscurator.app.config import AppSettings
from kidscurator.app.telemetry import TELEMETRY_LOGGER_NAME

ROOT_LOGGER_NAME = "kids_curator"
LOG_FILE_NAME = "kids-curator.log"
TELEMETRY_LOG_FILE_NAME = "kids-curator-telemetry.log"

# `scripts/serve.py` starts uvicorn with `log_config=None`; its records share our handlers.
SERVER_LOGGER_NAMES: tuple[str, ...] = ("uvicorn",)


def configure_application_logging(settings: AppSettings) -> Path:
    """
    Route application, server and telemetry records to their destinations.

    Application and server loggers write to the console at `settings.log_level`
    and to `kids-curator.log` at DEBUG, one JSON object per line. Telemetry
    events only go to `kids-curator-telemetry.log`. Calling this again
    replaces previously installed handlers.
    """
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = settings.log_dir / LOG_FILE_NAME
    telemetry_log_file = settings.log_dir / TELEMETRY_LOG_FILE_NAME

    _configure_structlog()

    console_stream = sys.stdout
    console_handler = _console_handler(console_stream, level=_resolve_log_level(settings.log_level))
    file_handler = _json_file_handler(log_file, level=logging.DEBUG)

    app_logger = _install_handlers(ROOT_LOGGER_NAME, console_handler, file_handler)
    app_logger.setLevel(logging.DEBUG)
    for server_logger_name in SERVER_LOGGER_NAMES:
        _install_handlers(server_logger_name, console_handler, file_handler).setLevel(logging.INFO)
    _install_handlers(
        TELEMETRY_LOGGER_NAME,
        _json_file_handler(telemetry_log_file, level=logging.INFO),
    ).setLevel(logging.INFO)

    app_logger.info(
        "logging configured console_level=%s path=%s telemetry_path=%s",
        settings.log_level.upper(),
        log_file,
        telemetry_log_file,
    )
    return log_file


def _install_handlers(logger_name: str, *handlers: logging.Handler) -> logging.Logger:
    logger = logging.getLogger(logger_name)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        if existing not in handlers:
            existing.close()
    for handler in handlers:
        logger.addHandler(handler)
    return logger


def _resolve_log_level(raw_level: str) -> int:
    resolved = logging.getLevelName(raw_level.strip().upper())
    if isinstance(resolved, int):
        return resolved
    return logging.INFO


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _console_handler(stream: TextIO, *, level: int) -> logging.Handler:
    handler = logging.StreamHandler(stream=stream)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_pre_chain(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=_stream_supports_color(stream)),
            ],
        )
    )
    return handler


def _json_file_handler(path: Path, *, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_pre_chain(),
            processors=[
                _add_record_metadata,
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                # Queries and channel names are often Arabic; keep them readable.
                structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False),
            ],
        )
    )
    return handler


def _shared_pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
    ]


def _add_record_metadata(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        event_dict.update(
            pathname=record.pathname,
            lineno=record.lineno,
            func_name=record.funcName,
            process=record.process,
            thread_name=record.threadName,
        )
    return event_dict


def _stream_supports_color(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    if not callable(isatty):
        return False
    try:
        return bool(isatty())
    except Exception:
        return False
