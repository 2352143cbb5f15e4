from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Protocol, Sequence

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EventEntry:
    component: str
    event: str
    timestamp: float = field(default_factory=time.time)
    fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["timestamp"] = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.timestamp))
        return payload


class EventSink(Protocol):
    def emit(self, component: str, event: str, **fields: Any) -> None:  # pragma: no cover - interface
        ...


class LoggingEventSink:
    """Forward events to the stdlib logger; failures are logged at ERROR."""

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logger

    def emit(self, component: str, event: str, **fields: Any) -> None:
        level = logging.ERROR if event.endswith("failed") else logging.INFO
        detail = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        self._logger.log(level, "[%s] %s %s", component, event, detail)


class JsonlEventSink:
    def __init__(self, log_file: Path) -> None:
        self._log_file = log_file
        self._lock = threading.Lock()

    def emit(self, component: str, event: str, **fields: Any) -> None:
        entry = EventEntry(component=component, event=event, fields=fields)
        line = json.dumps(entry.to_dict(), ensure_ascii=False, default=str)
        with self._lock:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            with self._log_file.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")


class MemoryEventSink:
    def __init__(self) -> None:
        self.entries: list[EventEntry] = []
        self._lock = threading.Lock()

    def emit(self, component: str, event: str, **fields: Any) -> None:
        with self._lock:
            self.entries.append(EventEntry(component=component, event=event, fields=fields))

    def events(self, component: str | None = None) -> list[str]:
        return [e.event for e in self.entries if component is None or e.component == component]


class CompositeEventSink:
    def __init__(self, sinks: Sequence[EventSink]) -> None:
        self._sinks = list(sinks)

    def emit(self, component: str, event: str, **fields: Any) -> None:
        for sink in self._sinks:
            sink.emit(component, event, **fields)


class GuardedEventSink:
    """Wrap a sink so a failing emit is logged instead of raised."""

    def __init__(self, sink: EventSink) -> None:
        self._sink = sink

    def emit(self, component: str, event: str, **fields: Any) -> None:
        try:
            self._sink.emit(component, event, **fields)
        except Exception:
            logger.exception("Dropping telemetry event %s from %s", event, component)


def build_event_sink(event_log: Path | None) -> EventSink:
    if event_log is None:
        return LoggingEventSink()
    return CompositeEventSink([LoggingEventSink(), JsonlEventSink(event_log)])


__all__ = [
    "CompositeEventSink",
    "EventEntry",
    "EventSink",
    "GuardedEventSink",
    "JsonlEventSink",
    "LoggingEventSink",
    "MemoryEventSink",
    "build_event_sink",
]
