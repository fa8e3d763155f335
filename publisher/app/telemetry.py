from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Literal, Protocol

import structlog

from publisher.app.logging_config import mask_url_credentials

LOGGER = logging.getLogger("cluster_publisher.telemetry")

TelemetryValue = bool | int | float | str | None

_REDACTED = "[redacted]"
_REDACTED_KEY_PARTS: tuple[str, ...] = ("authorization", "password", "payload", "secret", "token")
_MAX_VALUE_LENGTH = 200


class TelemetrySink(Protocol):
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        ...


class NoOpTelemetrySink:
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        _ = (event_name, attributes)


class StructuredLogTelemetrySink:
    def __init__(self) -> None:
        self._logger = structlog.get_logger("cluster_publisher.telemetry")

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self._logger.info("telemetry", telemetry_event=event_name, **attributes)


class TelemetrySpan:
    """Attributes collected while a timed operation runs, reported on finish."""

    def __init__(self, attributes: Mapping[str, Any]) -> None:
        self.attributes = dict(attributes)
        self._started_at = perf_counter()

    def set(self, **attributes: Any) -> None:
        self.attributes.update(attributes)

    def elapsed_ms(self) -> int:
        return int((perf_counter() - self._started_at) * 1000)


@dataclass(frozen=True)
class TelemetryClient:
    """Emits pipeline and request events.

    Attributes whose key mentions a credential or a bundle payload are
    replaced by ``[redacted]``; URLs lose any embedded userinfo.
    """

    enabled: bool
    sink: TelemetrySink

    @classmethod
    def disabled(cls) -> TelemetryClient:
        return cls(enabled=False, sink=NoOpTelemetrySink())

    def emit(self, event_name: str, **attributes: Any) -> None:
        if self.enabled:
            self.sink.emit(event_name=event_name, attributes=sanitize_attributes(attributes))

    @contextmanager
    def span(self, name: str, **attributes: Any) -> Iterator[TelemetrySpan]:
        """Emit ``<name>.start``, then ``<name>.finish`` or ``<name>.error``.

        The error event carries the exception type and, for pipeline errors,
        the failing operation. The exception always propagates.
        """
        span = TelemetrySpan(attributes)
        self.emit(f"{name}.start", **attributes)
        try:
            yield span
        except Exception as exc:
            self.emit(
                f"{name}.error",
                **attributes,
                error_type=type(exc).__name__,
                operation=getattr(exc, "operation", None),
                duration_ms=span.elapsed_ms(),
            )
            raise
        self.emit(f"{name}.finish", **span.attributes, duration_ms=span.elapsed_ms())


def build_telemetry_client(*, enabled: bool, sink: Literal["none", "log"]) -> TelemetryClient:
    if not enabled or sink == "none":
        return TelemetryClient.disabled()
    if sink == "log":
        return TelemetryClient(enabled=True, sink=StructuredLogTelemetrySink())
    LOGGER.warning("unknown telemetry sink, telemetry disabled sink=%s", sink)
    return TelemetryClient.disabled()


def sanitize_attributes(attributes: Mapping[str, Any]) -> dict[str, TelemetryValue]:
    sanitized: dict[str, TelemetryValue] = {}
    for raw_key, raw_value in attributes.items():
        key = str(raw_key).strip().lower()
        if not key:
            continue
        if any(part in key for part in _REDACTED_KEY_PARTS):
            sanitized[key] = _REDACTED
        else:
            sanitized[key] = _sanitize_value(raw_value)
    return sanitized


def _sanitize_value(value: Any) -> TelemetryValue:
    if value is None or isinstance(value, bool | int | float):
        return value
    if isinstance(value, list | tuple):
        value = ",".join(str(item) for item in value)
    if not isinstance(value, str):
        return type(value).__name__
    compact = mask_url_credentials(" ".join(value.split()))
    if len(compact) > _MAX_VALUE_LENGTH:
        return f"{compact[:_MAX_VALUE_LENGTH]}..."
    return compact
