"""事件总线的错误分类，调用方可按 ``kind`` 分支处理。"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """错误类别。"""

    INVALID_BINDING = "invalid_binding"
    INVALID_NAME = "invalid_name"
    INVALID_HANDLER = "invalid_handler"
    INVALID_LIMIT = "invalid_limit"
    INVALID_UNSUBSCRIBE_ARGS = "invalid_unsubscribe_args"
    MISSING_FILTERS = "missing_filters"
    INVALID_FILTER = "invalid_filter"
    REENTRANT_EMISSION = "reentrant_emission"
    BUS_CLOSED = "bus_closed"


class EventBusError(ValueError):
    """所有总线错误的基类，携带错误类别与出错的参数值。"""

    kind: ErrorKind

    def __init__(self, message: str, value: Any = None) -> None:
        self.value = value
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value!r}, value={self.value!r})"


class InvalidBinding(EventBusError):
    kind = ErrorKind.INVALID_BINDING


class InvalidName(EventBusError):
    kind = ErrorKind.INVALID_NAME


class InvalidHandler(EventBusError):
    kind = ErrorKind.INVALID_HANDLER


class InvalidLimit(EventBusError):
    kind = ErrorKind.INVALID_LIMIT


class InvalidUnsubscribeArgs(EventBusError):
    kind = ErrorKind.INVALID_UNSUBSCRIBE_ARGS


class MissingFilters(EventBusError):
    kind = ErrorKind.MISSING_FILTERS


class InvalidFilter(EventBusError):
    """过滤器既不是精确 id，也无法编译为正则表达式。"""

    kind = ErrorKind.INVALID_FILTER


class ReentrantEmission(EventBusError):
    """配置禁止在处理函数内部再次派发事件。"""

    kind = ErrorKind.REENTRANT_EMISSION


class BusClosed(EventBusError, RuntimeError):
    """总线已关闭后仍被调用。"""

    kind = ErrorKind.BUS_CLOSED


__all__ = [
    "ErrorKind",
    "EventBusError",
    "InvalidBinding",
    "InvalidName",
    "InvalidHandler",
    "InvalidLimit",
    "InvalidUnsubscribeArgs",
    "MissingFilters",
    "InvalidFilter",
    "ReentrantEmission",
    "BusClosed",
]
