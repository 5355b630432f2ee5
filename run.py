"""Demo entry point wiring the event bus to the in-memory container."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from container import GuidTokenTracker, InMemoryAppLoader
from core.config_loader import AppConfig, configure_logging, load_config
from core.context import current_binding
from core.event_bus import EventBus

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Container event bus demo")
    parser.add_argument("--demo", action="store_true", help="Run the scripted container scenario")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--env", type=Path, default=None, help="Path to .env file")
    return parser.parse_args(argv)


def _recorder(deliveries: List[str], label: str):
    def _handler(*args: Any) -> None:
        binding = current_binding()
        owner = binding.instance_id if binding is not None else "?"
        deliveries.append(f"{label}<-{args}")
        LOGGER.info("%s (%s) received %s", label, owner, args)

    return _handler


def run_demo(config: AppConfig) -> List[str]:
    """Run a short scripted scenario and return the recorded deliveries."""

    loader = InMemoryAppLoader()
    tokens = GuidTokenTracker(prefix=config.container.token_prefix)
    deliveries: List[str] = []

    with EventBus(loader, tokens, config.bus) as bus:
        page = tokens.issue()
        chart = loader.load("chart-1", "com.example.chart")
        news = loader.begin_load("news-1", "com.example.news")

        bus.on(page, "symbol.changed", _recorder(deliveries, "page"))
        bus.on(chart, "symbol.changed", _recorder(deliveries, "chart"))
        bus.once(news, "symbol.changed", _recorder(deliveries, "news"))
        LOGGER.info("Pending subscriptions before load: %d", bus.pending_count())

        bus.emit("symbol.changed", "AAPL")
        loader.complete_load("news-1")
        bus.emit_to(["com.example.*"], "symbol.changed", "MSFT")
        bus.emit_to(["chart-1"], "symbol.changed", "GOOG")
        bus.off(chart)
        bus.emit("symbol.changed", "TSLA")
        LOGGER.info("Remaining event names: %s", list(bus.event_names()))

    return deliveries


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    config = load_config(config_path=args.config, env_path=args.env)
    configure_logging(config.logging)
    if not args.demo:
        raise SystemExit("Specify --demo")
    deliveries = run_demo(config)
    LOGGER.info("Demo finished with %d deliveries", len(deliveries))


if __name__ == "__main__":
    main()
