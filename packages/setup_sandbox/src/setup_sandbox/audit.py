from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

AuditEvent = dict[str, Any]

EVENT_VALIDATION = "VALIDATION"
EVENT_BOUNDARY_VIOLATION = "BOUNDARY_VIOLATION"
EVENT_SANDBOX_VIOLATION = "SANDBOX_VIOLATION"
EVENT_SECURITY = "SECURITY_EVENT"

_VIOLATION_TYPES: frozenset[str] = frozenset({EVENT_BOUNDARY_VIOLATION, EVENT_SANDBOX_VIOLATION})


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()


def make_audit_event(event_type: str, data: dict[str, Any], *, ts: str | None = None) -> AuditEvent:
    return {"ts": ts or utc_now_iso(), "type": event_type, "data": dict(data)}


class SecurityAuditLogger:
    """
    Per-invocation trail of security-relevant events.

    Every event is emitted to the ``setup_sandbox.audit`` logger immediately and kept in an
    in-memory buffer. When ``log_file`` is set, :meth:`flush` appends buffered events as JSON lines.
    The log file is chosen by the host and is expected to live outside the project directory.
    """

    def __init__(self, *, log_file: Path | None = None, flush_threshold: int = 10) -> None:
        self._log_file = log_file
        self._flush_threshold = max(1, int(flush_threshold))
        self._buffer: list[AuditEvent] = []
        self._history: list[AuditEvent] = []

    @property
    def events(self) -> tuple[AuditEvent, ...]:
        return tuple(self._history)

    def log_validation(self, data: dict[str, Any]) -> None:
        self._record(EVENT_VALIDATION, data)

    def log_boundary_violation(self, data: dict[str, Any]) -> None:
        self._record(EVENT_BOUNDARY_VIOLATION, data)

    def log_sandbox_violation(self, data: dict[str, Any]) -> None:
        self._record(EVENT_SANDBOX_VIOLATION, data)

    def log_security_event(self, data: dict[str, Any]) -> None:
        self._record(EVENT_SECURITY, data)

    def iter_events(self, event_type: str | None = None) -> Iterator[AuditEvent]:
        for event in self._history:
            if event_type is None or event["type"] == event_type:
                yield event

    def _record(self, event_type: str, data: dict[str, Any]) -> None:
        event = make_audit_event(event_type, data)
        self._history.append(event)
        self._buffer.append(event)

        level = logging.WARNING if event_type in _VIOLATION_TYPES else logging.INFO
        logger.log(level, "[SECURITY:%s] %s", event_type, json.dumps(event["data"], sort_keys=True))

        if len(self._buffer) >= self._flush_threshold:
            self.flush()

    def flush(self) -> int:
        if self._log_file is None or not self._buffer:
            return 0
        entries = list(self._buffer)
        self._log_file.parent.mkdir(parents=True, exist_ok=True)
        with self._log_file.open("a", encoding="utf-8", newline="\n") as f:
            for entry in entries:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        del self._buffer[: len(entries)]
        return len(entries)

    def close(self) -> None:
        self.flush()


def iter_audit_jsonl(path: Path) -> Iterator[AuditEvent]:
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            yield json.loads(line)


__all__ = [
    "EVENT_BOUNDARY_VIOLATION",
    "EVENT_SANDBOX_VIOLATION",
    "EVENT_SECURITY",
    "EVENT_VALIDATION",
    "AuditEvent",
    "SecurityAuditLogger",
    "iter_audit_jsonl",
    "make_audit_event",
    "utc_now_iso",
]
