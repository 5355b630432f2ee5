"""过滤匹配：判断订阅者身份是否满足派发时给出的过滤条件。

过滤器依次尝试通配符、精确实例 id、精确应用 id，最后作为忽略大小写的
正则表达式匹配应用 id；任一过滤器命中即返回。
"""

from __future__ import annotations

import re
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Iterable, List, Optional, Pattern, Sequence, Union

from core.errors import InvalidFilter, MissingFilters
from core.events import WILDCARD, Binding

FilterInput = Union[str, Iterable[Optional[str]], None]


class PatternMode(str, Enum):
    """正则过滤器的匹配方式。"""

    MATCH = "match"  # anchored at the start of the app id
    SEARCH = "search"


def _build_compiler(cache_size: int) -> Callable[[str], Pattern[str]]:
    @lru_cache(maxsize=cache_size)
    def _compile(pattern: str) -> Pattern[str]:
        try:
            return re.compile(pattern, re.IGNORECASE)
        except re.error as exc:
            raise InvalidFilter(f"filter {pattern!r} is not a valid pattern: {exc}", pattern) from exc

    return _compile


class FilterMatcher:
    """带编译缓存的过滤匹配器，每条总线持有一个实例。"""

    def __init__(self, mode: PatternMode = PatternMode.MATCH, cache_size: int = 256) -> None:
        self.mode = PatternMode(mode)
        self._compile = _build_compiler(cache_size)

    def matches(self, binding: Binding, filters: Sequence[str]) -> bool:
        """任一过滤器命中即为 True；空序列的“全部匹配”语义由调用方处理。"""

        app_id = binding.app_id
        for item in filters:
            if item == WILDCARD:
                return True
            if item == binding.instance_id or (app_id is not None and item == app_id):
                return True
            if app_id is None:
                continue
            pattern = self._compile(item)
            found = pattern.match(app_id) if self.mode is PatternMode.MATCH else pattern.search(app_id)
            if found:
                return True
        return False

    def cache_info(self) -> Any:
        return self._compile.cache_info()


def normalize_filters(filters: FilterInput) -> List[str]:
    """把单个过滤器包装为列表并剔除空值。"""

    if filters is None:
        raise MissingFilters("you must provide a filter or a list of filters", filters)
    if isinstance(filters, str) or not isinstance(filters, Iterable):
        filters = [filters]
    wanted = [item for item in filters if item]
    for item in wanted:
        if not isinstance(item, str):
            raise InvalidFilter(f"filter {item!r} must be a string", item)
    return wanted


_default_matcher = FilterMatcher()


def matches(binding: Binding, filters: Sequence[str]) -> bool:
    """使用默认配置的匹配器。"""

    return _default_matcher.matches(binding, filters)


__all__ = ["FilterMatcher", "PatternMode", "matches", "normalize_filters"]
