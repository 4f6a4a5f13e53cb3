from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from setup_sandbox.boundary import Sealed
from setup_sandbox.errors import ValidationError

SETUP_LOGGER_NAME = "setup_sandbox.setup"

_UNSET = object()


class LogSink(Protocol):
    def info(self, msg: str) -> Any: ...

    def warn(self, msg: str) -> Any: ...


class StdlibSink:
    """Adapts a ``logging.Logger`` to the info/warn sink shape."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logging.getLogger(SETUP_LOGGER_NAME)

    def info(self, msg: str) -> None:
        self._log.info("%s", msg)

    def warn(self, msg: str) -> None:
        self._log.warning("%s", msg)


def _with_data(message: str, data: Any) -> str:
    if data is _UNSET:
        return str(message)
    return f"{message} {json.dumps(data, ensure_ascii=False, default=str)}"


class LoggerApi(Sealed):
    __slots__ = ("_sink",)

    def __init__(self, sink: LogSink | None = None) -> None:
        sink = sink or StdlibSink()
        if not callable(getattr(sink, "info", None)) or not callable(getattr(sink, "warn", None)):
            raise ValidationError("Logger must have info and warn methods", operation="logger")
        self._sink = sink

    def info(self, message: str, data: Any = _UNSET) -> None:
        self._sink.info(_with_data(message, data))

    def warn(self, message: str, data: Any = _UNSET) -> None:
        self._sink.warn(_with_data(message, data))

    def table(self, rows: Any) -> None:
        self._sink.info("Table data:")
        self._sink.info(json.dumps(rows, indent=2, ensure_ascii=False, default=str))


__all__ = ["SETUP_LOGGER_NAME", "LogSink", "LoggerApi", "StdlibSink"]
