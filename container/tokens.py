"""Container token tracking backed by random GUIDs."""

from __future__ import annotations

import uuid
from threading import Lock
from typing import Any, Set

from core.events import ContainerToken


class GuidTokenTracker:
    """Issue and recognise tokens for listeners that are not applications."""

    def __init__(self, prefix: str = "container-") -> None:
        self.prefix = prefix
        self._tokens: Set[str] = set()
        self._lock = Lock()

    def issue(self) -> ContainerToken:
        token = ContainerToken(f"{self.prefix}{uuid.uuid4()}")
        with self._lock:
            self._tokens.add(token.value)
        return token

    def revoke(self, token: ContainerToken) -> None:
        with self._lock:
            self._tokens.discard(token.value)

    def is_recognized_token(self, value: Any) -> bool:
        if not isinstance(value, ContainerToken):
            return False
        with self._lock:
            return value.value in self._tokens


__all__ = ["GuidTokenTracker"]
