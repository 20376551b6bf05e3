"""Command-line entry point for the change monitor."""
from __future__ import annotations

import argparse
import logging
import signal
from pathlib import Path

from .actions import load_action_factory
from .config import ConfigError, load_config
from .monitor import FileSystemMonitor


def main() -> None:
    parser = argparse.ArgumentParser(description="Run debounced actions for changes in a directory tree")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to the YAML configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    config_path = Path(args.config)
    try:
        app_config = load_config(config_path)
    except ConfigError as exc:
        logging.error("%s", exc)
        raise SystemExit(2) from exc

    factory = load_action_factory(app_config.factory, root_path=app_config.monitor.root_path)
    monitor = FileSystemMonitor(app_config.monitor, factory)

    @monitor.on_failure
    def _log_failure(error: BaseException) -> None:
        logging.getLogger("changemonitor").error("%s", error, exc_info=error)

    signal.signal(signal.SIGTERM, lambda signum, frame: monitor.request_stop())
    monitor.run()


if __name__ == "__main__":
    main()
