"""延迟订阅：目标实例仍在加载时暂存订阅，加载完成后按原顺序重放。

每个实例 id 只向加载器登记一次完成回调；回调触发时先取出整组请求再重放，
保证每条请求恰好重放一次。
"""

from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Callable, Dict, List, Optional

from core.collaborators import AppLoader
from core.events import AppInstance, PendingSubscription

LOGGER = logging.getLogger(__name__)

Replay = Callable[[AppInstance, PendingSubscription], None]


class PendingSubscriptions:
    """以实例 id 为键的延迟订阅队列。"""

    def __init__(self, loader: AppLoader, replay: Replay, lock: Optional[threading.RLock] = None) -> None:
        self._loader = loader
        self._replay = replay
        self._lock = lock or threading.RLock()
        self._pending: Dict[str, List[PendingSubscription]] = {}

    def defer(self, request: PendingSubscription) -> None:
        instance_id = request.binding.instance_id
        with self._lock:
            queue = self._pending.get(instance_id)
            if queue is not None:
                queue.append(request)
                LOGGER.debug("Queued subscription %s for loading instance %s", request.name, instance_id)
                return
            self._pending[instance_id] = [request]
        LOGGER.debug("Deferred subscription %s until instance %s is loaded", request.name, instance_id)
        self._loader.on_load_complete(instance_id, partial(self._on_loaded, instance_id))

    def _on_loaded(self, instance_id: str, resolved: AppInstance) -> None:
        with self._lock:
            queue = self._pending.pop(instance_id, None)
        if not queue:
            return
        LOGGER.debug("Replaying %d subscription(s) for instance %s", len(queue), instance_id)
        first_error: Optional[BaseException] = None
        for request in queue:
            try:
                self._replay(resolved, request)
            except Exception as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def count(self, instance_id: Optional[str] = None) -> int:
        with self._lock:
            if instance_id is not None:
                return len(self._pending.get(instance_id, ()))
            return sum(len(queue) for queue in self._pending.values())

    def clear(self) -> int:
        with self._lock:
            dropped = sum(len(queue) for queue in self._pending.values())
            self._pending.clear()
        return dropped


__all__ = ["PendingSubscriptions"]
