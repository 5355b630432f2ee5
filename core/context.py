"""派发上下文：处理函数执行期间可查询当前订阅所属的身份。"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from core.events import Binding

_current_binding: ContextVar[Optional[Binding]] = ContextVar("current_binding", default=None)


def current_binding() -> Optional[Binding]:
    """返回正在执行的处理函数所属的绑定；不在派发中时为 None。"""

    return _current_binding.get()


@contextmanager
def dispatching(binding: Binding) -> Iterator[None]:
    token = _current_binding.set(binding)
    try:
        yield
    finally:
        _current_binding.reset(token)


__all__ = ["current_binding", "dispatching"]
