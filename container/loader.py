"""In-memory application loader used by the demo container and the tests.

Instances move through two states: *loading* (after :meth:`begin_load`) and
*loaded* (after :meth:`complete_load`). Completion callbacks registered while an
instance is loading fire exactly once, in registration order, with the resolved
instance.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.collaborators import LoadCallback
from core.events import AppInstance

LOGGER = logging.getLogger(__name__)


class InMemoryAppLoader:
    """Track loading/loaded application instances in process memory."""

    def __init__(self) -> None:
        self._loading: Dict[str, AppInstance] = {}
        self._loaded: Dict[str, AppInstance] = {}
        self._listeners: Dict[str, List[LoadCallback]] = {}
        self._lock = Lock()

    def begin_load(
        self, instance_id: str, app_id: str, config: Optional[Mapping[str, Any]] = None
    ) -> AppInstance:
        """Mark an instance as loading and return its placeholder binding."""

        with self._lock:
            if instance_id in self._loading or instance_id in self._loaded:
                raise ValueError(f"instance {instance_id} is already registered")
            placeholder = AppInstance(instance_id=instance_id, app_id=app_id, config=dict(config or {}))
            self._loading[instance_id] = placeholder
        LOGGER.info("Loading %s (%s)", app_id, instance_id)
        return placeholder

    def complete_load(self, instance_id: str, config: Optional[Mapping[str, Any]] = None) -> AppInstance:
        """Finish loading an instance and notify every registered listener once."""

        with self._lock:
            placeholder = self._loading.pop(instance_id, None)
            if placeholder is None:
                raise ValueError(f"instance {instance_id} is not loading")
            merged = dict(placeholder.config)
            merged.update(config or {})
            resolved = AppInstance(instance_id=instance_id, app_id=placeholder.app_id, config=merged)
            self._loaded[instance_id] = resolved
            listeners = self._listeners.pop(instance_id, [])
        LOGGER.info("Loaded %s (%s), notifying %d listener(s)", resolved.app_id, instance_id, len(listeners))
        for callback in listeners:
            callback(resolved)
        return resolved

    def load(self, instance_id: str, app_id: str, config: Optional[Mapping[str, Any]] = None) -> AppInstance:
        self.begin_load(instance_id, app_id, config)
        return self.complete_load(instance_id)

    def unload(self, instance_id: str) -> None:
        with self._lock:
            self._loaded.pop(instance_id, None)
            self._loading.pop(instance_id, None)
            dropped = self._listeners.pop(instance_id, [])
        if dropped:
            LOGGER.warning("Unloaded %s with %d listener(s) still waiting", instance_id, len(dropped))

    def loaded_instances(self) -> Tuple[AppInstance, ...]:
        with self._lock:
            return tuple(self._loaded.values())

    # AppLoader protocol -------------------------------------------------
    def is_instance_still_loading(self, instance_id: str) -> bool:
        with self._lock:
            return instance_id in self._loading

    def get_loaded_application(self, binding: Any) -> Optional[AppInstance]:
        if not isinstance(binding, AppInstance):
            return None
        with self._lock:
            app = self._loaded.get(binding.instance_id)
        if app is None or app != binding:
            return None
        return app

    def on_load_complete(self, instance_id: str, callback: LoadCallback) -> None:
        with self._lock:
            resolved = self._loaded.get(instance_id)
            if resolved is None:
                self._listeners.setdefault(instance_id, []).append(callback)
                return
        callback(resolved)


__all__ = ["InMemoryAppLoader"]
