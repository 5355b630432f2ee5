"""外部协作者接口：应用加载器与容器令牌追踪器。

总线只通过这两个协议访问容器状态，具体实现见 ``container`` 包。
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from core.events import AppInstance

LoadCallback = Callable[[AppInstance], None]


class AppLoader(Protocol):
    """应用加载子系统的统一契约。"""

    def is_instance_still_loading(self, instance_id: str) -> bool:
        """实例 id 是否仍处于加载中。"""

    def get_loaded_application(self, binding: Any) -> Optional[AppInstance]:
        """返回已加载的应用实例；未加载或不是应用时返回 None。"""

    def on_load_complete(self, instance_id: str, callback: LoadCallback) -> None:
        """实例加载完成后以解析后的实例调用回调，每次登记恰好触发一次。"""


class TokenTracker(Protocol):
    """容器令牌追踪器。"""

    def is_recognized_token(self, value: Any) -> bool:
        """value 是否为当前有效的容器令牌。"""


__all__ = ["AppLoader", "LoadCallback", "TokenTracker"]
