import sys
from pathlib import Path
from typing import List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from container import GuidTokenTracker, InMemoryAppLoader
from core.config_loader import BusConfig
from core.context import current_binding
from core.errors import (
    BusClosed,
    InvalidBinding,
    InvalidFilter,
    InvalidHandler,
    InvalidLimit,
    InvalidName,
    InvalidUnsubscribeArgs,
    MissingFilters,
    ReentrantEmission,
)
from core.event_bus import EventBus
from core.events import AppInstance, ContainerToken


@pytest.fixture()
def loader() -> InMemoryAppLoader:
    return InMemoryAppLoader()


@pytest.fixture()
def tokens() -> GuidTokenTracker:
    return GuidTokenTracker()


@pytest.fixture()
def bus(loader: InMemoryAppLoader, tokens: GuidTokenTracker) -> EventBus:
    return EventBus(loader, tokens)


def test_dispatch_order_is_most_recent_first(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")
    calls: List[str] = []
    bus.on(app, "evt", lambda: calls.append("A"))
    bus.on(app, "evt", lambda: calls.append("B"))
    bus.on(app, "evt", lambda: calls.append("C"))

    assert bus.emit("evt") == 3
    assert calls == ["C", "B", "A"]


def test_handler_receives_args_and_binding_context(bus: EventBus, tokens: GuidTokenTracker) -> None:
    token = tokens.issue()
    seen = []

    def _handler(*args) -> None:
        seen.append((args, current_binding()))

    bus.on(token, "evt", _handler)
    bus.emit("evt", 1, "two")

    assert seen == [((1, "two"), token)]
    assert current_binding() is None


def test_emit_to_app_id_reaches_only_that_app(bus: EventBus, loader: InMemoryAppLoader) -> None:
    chart_1 = loader.load("chart-1", "com.example.chart")
    chart_2 = loader.load("chart-2", "com.example.chart")
    news = loader.load("news-1", "com.example.news")
    calls: List[str] = []
    for app in (chart_1, chart_2, news):
        bus.on(app, "refresh", lambda app=app: calls.append(app.instance_id))

    assert bus.emit_to(["com.example.chart"], "refresh") == 2
    assert sorted(calls) == ["chart-1", "chart-2"]


def test_emit_to_single_filter_and_empty_filters(bus: EventBus, loader: InMemoryAppLoader) -> None:
    chart = loader.load("chart-1", "com.example.chart")
    news = loader.load("news-1", "com.example.news")
    calls: List[str] = []
    bus.on(chart, "refresh", lambda: calls.append("chart"))
    bus.on(news, "refresh", lambda: calls.append("news"))

    bus.emit_to("news-1", "refresh")
    assert calls == ["news"]

    calls.clear()
    bus.emit_to(["", None], "refresh")
    assert calls == ["news", "chart"]


def test_once_fires_exactly_once(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")
    calls: List[int] = []
    bus.once(app, "evt", lambda: calls.append(1))

    for _ in range(3):
        bus.emit("evt")

    assert calls == [1]
    assert "evt" not in bus.event_names()


def test_many_fires_on_first_matching_emissions(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")
    calls: List[int] = []
    bus.many(app, "evt", 3, lambda n: calls.append(n))

    bus.emit_to(["other"], "evt", 0)
    for n in range(1, 6):
        bus.emit("evt", n)

    assert calls == [1, 2, 3]
    assert bus.subscribers("evt") == ()


def test_off_without_name_removes_binding_everywhere(
    bus: EventBus, loader: InMemoryAppLoader, tokens: GuidTokenTracker
) -> None:
    app = loader.load("i1", "com.example.a")
    page = tokens.issue()
    bus.on(app, "a", lambda: None)
    bus.on(app, "b", lambda: None)
    bus.on(page, "b", lambda: None)

    assert bus.off(app) == 2
    assert bus.event_names() == ("b",)
    assert [sub.binding for sub in bus.subscribers("b")] == [page]


def test_off_with_name_and_handler(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")

    def first() -> None:
        pass

    def second() -> None:
        pass

    bus.on(app, "evt", first)
    bus.on(app, "evt", second)

    assert bus.off(app, "evt", first) == 1
    assert [sub.handler for sub in bus.subscribers("evt")] == [second]
    assert bus.off(app, "missing") == 0


def test_off_handler_only_requires_binding_match(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")

    def handler() -> None:
        pass

    bus.on(app, "evt", handler)
    assert bus.off(None, "evt", handler) == 0
    assert len(bus.subscribers("evt")) == 1


def test_off_validation(bus: EventBus) -> None:
    with pytest.raises(InvalidUnsubscribeArgs):
        bus.off()
    with pytest.raises(InvalidUnsubscribeArgs):
        bus.off(AppInstance(instance_id="ghost", app_id="x"), "evt")
    with pytest.raises(InvalidName):
        bus.off(None, 42, lambda: None)


def test_subscribe_validation(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")
    with pytest.raises(InvalidBinding):
        bus.on(None, "evt", lambda: None)
    with pytest.raises(InvalidBinding):
        bus.on(ContainerToken("unknown"), "evt", lambda: None)
    with pytest.raises(InvalidBinding):
        bus.on(AppInstance(instance_id="i1", app_id="other"), "evt", lambda: None)
    with pytest.raises(InvalidName):
        bus.on(app, "", lambda: None)
    with pytest.raises(InvalidHandler):
        bus.on(app, "evt", None)
    for bad in (0, -1, True, 1.5, "2"):
        with pytest.raises(InvalidLimit) as info:
            bus.many(app, "evt", bad, lambda: None)
        assert info.value.value == bad
    assert bus.event_names() == ()


def test_emit_validation_and_silent_no_subscribers(bus: EventBus) -> None:
    with pytest.raises(InvalidName):
        bus.emit("")
    with pytest.raises(InvalidName):
        bus.emit(None)
    with pytest.raises(MissingFilters):
        bus.emit_to(None, "evt")
    assert bus.emit("nobody-listens") == 0


def test_handler_errors_propagate_and_stop_the_walk(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")
    calls: List[str] = []

    def boom() -> None:
        raise RuntimeError("boom")

    bus.on(app, "evt", lambda: calls.append("first"))
    bus.on(app, "evt", boom)

    with pytest.raises(RuntimeError, match="boom"):
        bus.emit("evt")
    assert calls == []


def test_raising_once_handler_stays_registered(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")
    attempts: List[int] = []

    def flaky() -> None:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("boom")

    bus.once(app, "evt", flaky)

    with pytest.raises(RuntimeError, match="boom"):
        bus.emit("evt")
    assert len(bus.subscribers("evt")) == 1
    assert bus.subscribers("evt")[0].remaining == 1

    assert bus.emit("evt") == 1
    assert bus.subscribers("evt") == ()
    assert attempts == [1, 1]


def test_emit_to_pattern_reaches_matching_apps_only(
    bus: EventBus, loader: InMemoryAppLoader, tokens: GuidTokenTracker
) -> None:
    chart = loader.load("chart-1", "com.example.chart")
    news = loader.load("news-1", "COM.EXAMPLE.NEWS")
    other = loader.load("other-1", "org.example.chart")
    page = tokens.issue()
    calls: List[str] = []
    for binding in (chart, news, other, page):
        bus.on(binding, "refresh", lambda binding=binding: calls.append(binding.instance_id))

    assert bus.emit_to(["com.example.*"], "refresh") == 2
    assert calls == ["news-1", "chart-1"]


def test_non_string_filters_are_rejected(bus: EventBus, tokens: GuidTokenTracker) -> None:
    page = tokens.issue()
    calls: List[int] = []
    bus.on(page, "evt", lambda: calls.append(1))

    with pytest.raises(InvalidFilter) as info:
        bus.emit_to([5], "evt")
    assert info.value.value == 5
    with pytest.raises(InvalidFilter):
        bus.emit_to(5, "evt")
    assert calls == []


def test_reentrant_emit_uses_start_snapshot(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")
    calls: List[str] = []

    def late() -> None:
        calls.append("late")

    def remover() -> None:
        calls.append("remover")
        bus.off(app, "evt", victim)
        bus.on(app, "evt", late)

    def victim() -> None:
        calls.append("victim")

    bus.on(app, "evt", victim)
    bus.on(app, "evt", remover)

    bus.emit("evt")
    assert calls == ["remover"]

    calls.clear()
    bus.emit("evt")
    assert calls == ["late", "remover"]


def test_once_handler_is_not_reentered(bus: EventBus, loader: InMemoryAppLoader) -> None:
    app = loader.load("i1", "com.example.a")
    calls: List[int] = []

    def handler() -> None:
        calls.append(1)
        bus.emit("evt")

    bus.once(app, "evt", handler)
    bus.emit("evt")
    assert calls == [1]


def test_reentrant_emit_can_be_forbidden(loader: InMemoryAppLoader, tokens: GuidTokenTracker) -> None:
    bus = EventBus(loader, tokens, BusConfig(allow_reentrant_emit=False))
    page = tokens.issue()
    bus.on(page, "outer", lambda: bus.emit("inner"))

    with pytest.raises(ReentrantEmission):
        bus.emit("outer")
    assert bus.emit("inner") == 0


def test_close_drops_everything(loader: InMemoryAppLoader, tokens: GuidTokenTracker) -> None:
    page = tokens.issue()
    loader.begin_load("i1", "com.example.a")
    with EventBus(loader, tokens) as bus:
        bus.on(page, "evt", lambda: None)
        bus.on(AppInstance(instance_id="i1", app_id="com.example.a"), "evt", lambda: None)
        assert bus.pending_count() == 1

    assert bus.closed
    assert bus.pending_count() == 0
    with pytest.raises(BusClosed):
        bus.emit("evt")
    with pytest.raises(BusClosed):
        bus.on(page, "evt", lambda: None)

    loader.complete_load("i1")
    assert bus.event_names() == ()


def test_buses_are_independent(loader: InMemoryAppLoader, tokens: GuidTokenTracker) -> None:
    page = tokens.issue()
    first = EventBus(loader, tokens)
    second = EventBus(loader, tokens)
    calls: List[str] = []
    first.on(page, "evt", lambda: calls.append("first"))

    assert second.emit("evt") == 0
    assert first.emit("evt") == 1
    assert calls == ["first"]
