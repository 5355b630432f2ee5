"""事件总线的数据模型：订阅者身份、订阅记录与延迟订阅。

应用实例与容器令牌共享同一套身份接口，过滤匹配与派发逻辑只依赖
``instance_id`` / ``app_id`` 两个字段。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

WILDCARD = "*"

Handler = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class AppInstance:
    """已加载（或正在加载）的应用实例。"""

    instance_id: str
    app_id: str
    config: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True, slots=True)
class ContainerToken:
    """容器级监听者的不透明令牌，例如宿主页面本身。"""

    value: str

    @property
    def instance_id(self) -> str:
        return self.value

    @property
    def app_id(self) -> Optional[str]:
        return None


Binding = Union[AppInstance, ContainerToken]


@dataclass(eq=False, slots=True)
class Subscription:
    """注册表中的一条订阅；按对象身份比较。"""

    handler: Handler
    binding: Binding
    remaining: Optional[int] = None
    active: bool = True
    in_flight: bool = False


@dataclass(slots=True)
class PendingSubscription:
    """目标实例仍在加载时暂存的订阅请求。"""

    binding: AppInstance
    name: str
    handler: Handler
    limit: Optional[int] = None


__all__ = [
    "WILDCARD",
    "Handler",
    "AppInstance",
    "ContainerToken",
    "Binding",
    "Subscription",
    "PendingSubscription",
]
