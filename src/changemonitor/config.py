"""Configuration loading utilities for the change monitor."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

import yaml # type: ignore

from .events import ChangeKind


logger = logging.getLogger(__name__)

ALL_KINDS: FrozenSet[ChangeKind] = frozenset(ChangeKind)


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


@dataclass
class MonitorConfig:
    """Options describing what to watch and how long to wait before acting."""

    root_path: Path
    name_filter: str = "*"
    kinds: FrozenSet[ChangeKind] = ALL_KINDS
    quiet_window: float = 0.2
    max_delay: Optional[float] = None
    use_polling: bool = False
    poll_interval: float = 1.0
    flush_on_stop: bool = True


@dataclass
class FactoryConfig:
    """Builder for the action factory, loaded dynamically from a module."""

    module: str
    function: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AppConfig:
    """Top-level configuration structure."""

    monitor: MonitorConfig
    factory: FactoryConfig


def load_config(path: Path) -> AppConfig:
    """Load and validate the YAML configuration file."""

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:  # pragma: no cover - logging helper
        raise ConfigError(f"Failed to parse YAML configuration: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    monitor_cfg = _parse_monitor_config(data.get("monitor"), config_path=path)
    factory_cfg = _parse_factory_config(data.get("factory"))

    return AppConfig(monitor=monitor_cfg, factory=factory_cfg)


def _parse_monitor_config(raw: Any, *, config_path: Path) -> MonitorConfig:
    if not isinstance(raw, dict):
        raise ConfigError("'monitor' section must be a mapping")

    root_path_raw = raw.get("root_path")
    if not isinstance(root_path_raw, str):
        raise ConfigError("monitor.root_path must be a string")

    root_path = Path(root_path_raw)
    if not root_path.is_absolute():
        root_path = (config_path.parent / root_path).resolve()

    name_filter = raw.get("name_filter", "*")
    if not isinstance(name_filter, str) or not name_filter:
        raise ConfigError("monitor.name_filter must be a non-empty string")

    kinds = _parse_kinds(raw.get("kinds"))
    quiet_window = _parse_positive_float(raw.get("quiet_window", 0.2), "monitor.quiet_window")
    max_delay: Optional[float] = None
    if raw.get("max_delay") is not None:
        max_delay = _parse_positive_float(raw["max_delay"], "monitor.max_delay")
        if max_delay < quiet_window:
            raise ConfigError("monitor.max_delay must not be shorter than monitor.quiet_window")
    poll_interval = _parse_positive_float(raw.get("poll_interval", 1.0), "monitor.poll_interval")
    use_polling = _parse_bool(raw.get("use_polling", False), "monitor.use_polling")
    flush_on_stop = _parse_bool(raw.get("flush_on_stop", True), "monitor.flush_on_stop")

    return MonitorConfig(
        root_path=root_path,
        name_filter=name_filter,
        kinds=kinds,
        quiet_window=quiet_window,
        max_delay=max_delay,
        use_polling=use_polling,
        poll_interval=poll_interval,
        flush_on_stop=flush_on_stop,
    )


def _parse_factory_config(raw: Any) -> FactoryConfig:
    if not isinstance(raw, dict):
        raise ConfigError("'factory' section must be a mapping")

    module = raw.get("module")
    function = raw.get("function")
    options = raw.get("options", {})

    if not isinstance(module, str) or not isinstance(function, str):
        raise ConfigError("factory must include 'module' and 'function' strings")
    if options is None:
        options = {}
    if not isinstance(options, dict):
        raise ConfigError("factory.options must be a mapping if provided")

    logger.info("Configured action factory %s.%s", module, function)
    return FactoryConfig(module=module, function=function, options=options)


def _parse_kinds(value: Any) -> FrozenSet[ChangeKind]:
    if value is None:
        return ALL_KINDS
    names = _ensure_str_list(value, "monitor.kinds")
    if not names:
        raise ConfigError("monitor.kinds must name at least one change kind")
    kinds = set()
    for name in names:
        try:
            kinds.add(ChangeKind(name.strip().lower()))
        except ValueError as exc:
            allowed = ", ".join(kind.value for kind in ChangeKind)
            raise ConfigError(f"monitor.kinds entries must be one of: {allowed}") from exc
    return frozenset(kinds)


def _parse_positive_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be numeric")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be numeric") from exc
    if number <= 0:
        raise ConfigError(f"{field_name} must be positive")
    return number


def _parse_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a boolean")
    return value


def _ensure_str_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"{field_name} must be a list of strings")
    items: List[str] = []
    for elem in value:
        if not isinstance(elem, str):
            raise ConfigError(f"{field_name} must contain only strings")
        items.append(elem)
    return items
