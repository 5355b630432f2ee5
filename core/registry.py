"""订阅注册表：事件名到有序订阅列表的映射。

列表为空的事件名会立即从映射中删除，映射规模只与当前活跃的事件名数量有关。
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from core.events import Binding, Handler, Subscription


class SubscriptionRegistry:
    """按事件名保存订阅记录；顺序即订阅顺序。"""

    def __init__(self) -> None:
        self._subs: Dict[str, List[Subscription]] = {}

    def add(self, name: str, subscription: Subscription) -> Subscription:
        self._subs.setdefault(name, []).append(subscription)
        return subscription

    def get(self, name: str) -> Tuple[Subscription, ...]:
        return tuple(self._subs.get(name, ()))

    def names(self) -> Tuple[str, ...]:
        return tuple(self._subs)

    def discard(self, name: str, subscription: Subscription) -> bool:
        """移除单条记录；记录已不在列表中时返回 False。"""

        entries = self._subs.get(name)
        if not entries:
            return False
        for idx in range(len(entries) - 1, -1, -1):
            if entries[idx] is subscription:
                del entries[idx]
                subscription.active = False
                if not entries:
                    del self._subs[name]
                return True
        return False

    def remove_matching(self, binding: Optional[Binding], name: str, handler: Optional[Handler]) -> int:
        """从尾到头移除绑定相同且（未给出处理函数或处理函数相同）的记录。"""

        entries = self._subs.get(name)
        if not entries:
            return 0
        removed = 0
        for idx in range(len(entries) - 1, -1, -1):
            sub = entries[idx]
            if sub.binding == binding and (handler is None or sub.handler == handler):
                del entries[idx]
                sub.active = False
                removed += 1
                if not entries:
                    del self._subs[name]
                    break
        return removed

    def clear(self) -> int:
        count = 0
        for entries in self._subs.values():
            for sub in entries:
                sub.active = False
            count += len(entries)
        self._subs.clear()
        return count

    def __contains__(self, name: object) -> bool:
        return name in self._subs

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._subs)


__all__ = ["SubscriptionRegistry"]
