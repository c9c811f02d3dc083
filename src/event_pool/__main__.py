"""CLI entrypoint for event-pool."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import gc
from importlib import metadata
from pathlib import Path

from .config import load_config
from .logging_utils import configure_logging
from .pool import EventPool


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="event-pool",
        description="event-pool - process-wide event registry with weakly held handlers",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a config.toml (defaults to $EVENT_POOL_CONFIG or ~/.config/event-pool/config.toml)",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Run a walkthrough of the registry and print a debug dump",
    )
    return parser


def run_demo() -> str:
    """Exercise every registry operation and return the final debug dump."""
    EventPool.remove_all()

    print("1. Subscribe and emit")

    def on_event(data: dict[str, str]) -> None:
        print(f"   handler received {data}")

    EventPool.subscribe("demo.event", on_event)
    EventPool.emit("demo.event", {"key": "case1"})
    EventPool.remove_all()

    print("2. Subscribe, unsubscribe, emit (nothing printed)")
    EventPool.subscribe("demo.event", on_event)
    EventPool.unsubscribe("demo.event", on_event)
    EventPool.emit("demo.event", {"key": "case2"})
    EventPool.remove_all()

    print("3. Subscribe, unsubscribe by id, emit (nothing printed)")
    subscription_id = EventPool.subscribe("demo.event", on_event)
    EventPool.unsubscribe_by_id(subscription_id)
    EventPool.emit("demo.event", {"key": "case3"})
    EventPool.remove_all()

    print("4. subscribe_once fires on the first emission only")
    EventPool.subscribe_once("demo.once", on_event)
    EventPool.emit("demo.once", {"key": "first emit"})
    EventPool.emit("demo.once", {"key": "second emit"})
    EventPool.remove_all()

    print("5. Sweep after the handler is reclaimed")

    def on_sweep(data: dict[str, str]) -> None:
        print(f"   sweep handler received {data}")

    EventPool.subscribe("demo.sweep", on_sweep)
    EventPool.subscribe("demo.sweep", on_event)
    EventPool.emit("demo.sweep", {"key": "before collection"})
    del on_sweep
    gc.collect()
    purged = EventPool.sweep()
    print(f"   purged {purged} subscription(s)")

    report = EventPool.debug_dump()
    print(report)
    EventPool.remove_all()
    return report


def main(argv: Sequence[str] | None = None) -> None:
    """Load configuration, set up logging, and handle CLI flags."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("event-pool")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"event-pool {version}")
        return

    config = load_config(args.config)
    configure_logging(config["logging"])
    EventPool.configure(config["pool"])

    if args.demo:
        run_demo()


if __name__ == "__main__":
    main()
