from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from time import perf_counter
from typing import Any, Literal, Protocol

import structlog

TELEMETRY_LOGGER_NAME = "kids_curator.telemetry"

# Attribute names containing any of these fragments are never emitted verbatim.
_REDACTED_KEY_FRAGMENTS: tuple[str, ...] = (
    "api_key",
    "authorization",
    "continuation",
    "cookie",
    "payload",
    "secret",
    "token",
)
_REDACTED = "[redacted]"
_MAX_STRING_LENGTH = 160

TelemetryValue = bool | int | float | str | None


class TelemetrySink(Protocol):
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        ...


class NoOpTelemetrySink:
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        _ = (event_name, attributes)


class StructuredLogTelemetrySink:
    """Writes each event as one structlog record on the telemetry logger."""

    def __init__(self, logger_name: str = TELEMETRY_LOGGER_NAME) -> None:
        self._logger = structlog.get_logger(logger_name)

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self._logger.info("telemetry", telemetry_event=event_name, **dict(attributes))


@dataclass(frozen=True)
class TelemetryClient:
    enabled: bool
    sink: TelemetrySink
    base_attributes: Mapping[str, Any] = field(default_factory=lambda: {})

    @classmethod
    def disabled(cls) -> TelemetryClient:
        return cls(enabled=False, sink=NoOpTelemetrySink())

    def bind(self, **attributes: Any) -> TelemetryClient:
        """Return a client that stamps `attributes` onto every event."""
        return replace(self, base_attributes={**self.base_attributes, **attributes})

    def emit(self, event_name: str, **attributes: Any) -> None:
        if not self.enabled:
            return
        merged = {**self.base_attributes, **attributes}
        self.sink.emit(event_name=event_name, attributes=sanitize_attributes(merged))

    @contextmanager
    def span(self, event_prefix: str, **attributes: Any) -> Iterator[dict[str, Any]]:
        """
        Emit `<prefix>.start` on entry and `<prefix>.finish` or `<prefix>.error`
        on exit, the latter two carrying `duration_ms`.

        The yielded dict collects extra attributes for the finish event
        (result counts, status codes). Exceptions are re-raised unchanged.
        """
        self.emit(f"{event_prefix}.start", **attributes)
        started_at = perf_counter()
        outcome: dict[str, Any] = {}
        try:
            yield outcome
        except Exception as exc:
            self.emit(
                f"{event_prefix}.error",
                **{
                    **attributes,
                    "duration_ms": _elapsed_ms(started_at),
                    "error_type": type(exc).__name__,
                },
            )
            raise
        self.emit(
            f"{event_prefix}.finish",
            **{**attributes, **outcome, "duration_ms": _elapsed_ms(started_at)},
        )


def build_telemetry_client(*, enabled: bool, sink: Literal["none", "log"]) -> TelemetryClient:
    if not enabled or sink == "none":
        return TelemetryClient.disabled()
    if sink == "log":
        return TelemetryClient(enabled=True, sink=StructuredLogTelemetrySink())

    logging.getLogger(TELEMETRY_LOGGER_NAME).warning(
        "unsupported telemetry sink requested; disabling telemetry sink=%s",
        sink,
    )
    return TelemetryClient.disabled()


def sanitize_attributes(attributes: Mapping[str, Any]) -> dict[str, TelemetryValue]:
    sanitized: dict[str, TelemetryValue] = {}
    for raw_key, raw_value in attributes.items():
        key = str(raw_key).strip().lower()
        if not key:
            continue
        if any(fragment in key for fragment in _REDACTED_KEY_FRAGMENTS):
            sanitized[key] = _REDACTED
        else:
            sanitized[key] = _compact_value(raw_value)
    return sanitized


def _compact_value(value: Any) -> TelemetryValue:
    if value is None or isinstance(value, bool | int | float):
        return value
    if not isinstance(value, str):
        return type(value).__name__
    # Query text is caller supplied; collapse whitespace and cap the length.
    compact = " ".join(value.split())
    if len(compact) > _MAX_STRING_LENGTH:
        return f"{compact[:_MAX_STRING_LENGTH]}..."
    return compact


def _elapsed_ms(started_at: float) -> int:
    return int((perf_counter() - started_at) * 1000)
