"""容器事件总线：托管应用之间按事件名与过滤条件通信。

公共接口为 ``on`` / ``once`` / ``many`` / ``off`` / ``emit`` / ``emit_to``。
派发从最近的订阅开始倒序执行，处理函数抛出的异常不做隔离，直接传给发送方。
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional, Tuple

from core.collaborators import AppLoader, TokenTracker
from core.config_loader import BusConfig
from core.context import dispatching
from core.errors import (
    BusClosed,
    InvalidBinding,
    InvalidHandler,
    InvalidLimit,
    InvalidName,
    InvalidUnsubscribeArgs,
    ReentrantEmission,
)
from core.events import WILDCARD, AppInstance, Binding, Handler, PendingSubscription, Subscription
from core.filters import FilterInput, FilterMatcher, normalize_filters
from core.pending import PendingSubscriptions
from core.registry import SubscriptionRegistry

LOGGER = logging.getLogger(__name__)


class EventBus:
    """发布/订阅机制，每条总线独立持有注册表与延迟订阅队列。"""

    def __init__(
        self,
        loader: AppLoader,
        tokens: TokenTracker,
        config: Optional[BusConfig] = None,
    ) -> None:
        self.config = config or BusConfig()
        self._loader = loader
        self._tokens = tokens
        self._lock = threading.RLock()
        self._registry = SubscriptionRegistry()
        self._pending = PendingSubscriptions(loader, self._replay, lock=self._lock)
        self._matcher = FilterMatcher(self.config.pattern_mode, self.config.pattern_cache_size)
        self._depth = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def on(self, binding: Binding, name: str, handler: Handler) -> None:
        self.subscribe(binding, name, handler)

    def once(self, binding: Binding, name: str, handler: Handler) -> None:
        self.subscribe(binding, name, handler, limit=1)

    def many(self, binding: Binding, name: str, limit: int, handler: Handler) -> None:
        self.subscribe(binding, name, handler, limit=limit)

    def off(
        self,
        binding: Optional[Binding] = None,
        name: Optional[str] = None,
        handler: Optional[Handler] = None,
    ) -> int:
        return self.unsubscribe(binding, name, handler)

    def emit(self, name: str, *args: Any) -> int:
        """向所有订阅者广播事件，返回被调用的处理函数数量。"""

        return self._send(name, [WILDCARD], args)

    def emit_to(self, filters: FilterInput, name: str, *args: Any) -> int:
        """只向满足过滤条件的订阅者发送事件。"""

        return self._send(name, filters, args)

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------
    def subscribe(
        self,
        binding: Binding,
        name: str,
        handler: Handler,
        limit: Optional[int] = None,
    ) -> None:
        """登记订阅；目标实例仍在加载时延迟到加载完成后再登记。"""

        self._ensure_open()
        if binding is None:
            raise InvalidBinding("you must provide an app instance or container token", binding)
        being_loaded = isinstance(binding, AppInstance) and self._loader.is_instance_still_loading(
            binding.instance_id
        )
        if not being_loaded and not self._is_known_binding(binding):
            raise InvalidBinding("binding must be a loaded app instance or a container token", binding)
        if not name or not isinstance(name, str):
            raise InvalidName("you must provide an event name", name)
        if handler is None or not callable(handler):
            raise InvalidHandler("you must provide an event handler", handler)
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
            raise InvalidLimit("limit must be an integer greater than 0", limit)

        if being_loaded:
            self._pending.defer(PendingSubscription(binding=binding, name=name, handler=handler, limit=limit))
            return

        with self._lock:
            self._registry.add(name, Subscription(handler=handler, binding=binding, remaining=limit))
        LOGGER.debug("Subscribed %s to %s (limit=%s)", binding.instance_id, name, limit)

    def unsubscribe(
        self,
        binding: Optional[Binding] = None,
        name: Optional[str] = None,
        handler: Optional[Handler] = None,
    ) -> int:
        """移除订阅，返回移除的记录数；未给出事件名时作用于所有事件。"""

        self._ensure_open()
        handler_is_valid = handler is not None and callable(handler)
        binding_is_valid = binding is not None and self._is_known_binding(binding)
        if not handler_is_valid and not binding_is_valid:
            raise InvalidUnsubscribeArgs("off requires at least a binding or a handler", (binding, handler))
        if name is not None and not isinstance(name, str):
            raise InvalidName("name must be a string if it is passed", name)

        match_handler = handler if handler_is_valid else None
        with self._lock:
            names = (name,) if name else self._registry.names()
            removed = sum(self._registry.remove_matching(binding, each, match_handler) for each in names)
        LOGGER.debug("Unsubscribed %d record(s) (name=%s)", removed, name or "*")
        return removed

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def _send(self, name: str, filters: FilterInput, args: Tuple[Any, ...]) -> int:
        self._ensure_open()
        if not name or not isinstance(name, str):
            raise InvalidName("you must provide an event name to emit", name)
        wanted = normalize_filters(filters)

        with self._lock:
            if self._depth and not self.config.allow_reentrant_emit:
                raise ReentrantEmission(f"cannot emit {name!r} from inside a handler", name)
            snapshot = self._registry.get(name)
            if not snapshot:
                LOGGER.debug("No subscribers for %s", name)
                return 0

            invoked = 0
            self._depth += 1
            try:
                for sub in reversed(snapshot):
                    if not sub.active:
                        continue
                    # limited records are not re-entered by nested emissions
                    if sub.in_flight and sub.remaining is not None:
                        continue
                    if wanted and not self._matcher.matches(sub.binding, wanted):
                        continue
                    sub.in_flight = True
                    try:
                        with dispatching(sub.binding):
                            sub.handler(*args)
                    finally:
                        sub.in_flight = False
                    invoked += 1
                    if sub.remaining is not None:
                        sub.remaining -= 1
                        if sub.remaining == 0:
                            self._registry.discard(name, sub)
            finally:
                self._depth -= 1

        LOGGER.debug("Dispatched %s to %d handler(s)", name, invoked)
        return invoked

    def _replay(self, resolved: AppInstance, request: PendingSubscription) -> None:
        if self._closed:
            return
        LOGGER.debug("Instance %s loaded, replaying subscription to %s", resolved.instance_id, request.name)
        self.subscribe(resolved, request.name, request.handler, limit=request.limit)

    # ------------------------------------------------------------------
    # Introspection & lifecycle
    # ------------------------------------------------------------------
    def subscribers(self, name: str) -> Tuple[Subscription, ...]:
        """便于测试/调试时查看订阅记录，顺序即订阅顺序。"""

        with self._lock:
            return self._registry.get(name)

    def event_names(self) -> Tuple[str, ...]:
        with self._lock:
            return self._registry.names()

    def pending_count(self, instance_id: Optional[str] = None) -> int:
        return self._pending.count(instance_id)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """丢弃全部订阅与延迟订阅，之后的调用均抛出 BusClosed。"""

        with self._lock:
            if self._closed:
                return
            self._closed = True
            dropped = self._registry.clear()
            deferred = self._pending.clear()
        LOGGER.info("Event bus closed (%d subscription(s), %d pending dropped)", dropped, deferred)

    def __enter__(self) -> "EventBus":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise BusClosed("event bus is closed")

    def _is_known_binding(self, binding: Any) -> bool:
        if self._loader.get_loaded_application(binding) is not None:
            return True
        return self._tokens.is_recognized_token(binding)


__all__ = ["EventBus"]
