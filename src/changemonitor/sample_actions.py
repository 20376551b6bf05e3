"""Example factory builders that can be referenced from configuration."""
from __future__ import annotations

import functools
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

from .events import Action, ChangeRecord

logger = logging.getLogger(__name__)


def log_changes(root_path: Path, options: Dict[str, Any]):
    """Log every change once it settles."""

    level_name = str(options.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    message = options.get("message", "Filesystem change detected")

    def create_action(record: ChangeRecord) -> Optional[Action]:
        return functools.partial(logger.log, level, "%s: %s", message, _describe_change(record, root_path))

    return create_action


def run_shell_command(root_path: Path, options: Dict[str, Any]):
    """Execute a templated shell command for each settled change."""

    template = options.get("command")
    if not template:
        raise ValueError("run_shell_command requires a 'command' option")

    def create_action(record: ChangeRecord) -> Optional[Action]:
        values = {
            "kind": record.kind.value,
            "path": str(record.path),
            "directory": str(record.path.parent),
            "filename": record.path.name,
            "root": str(root_path),
        }
        if record.previous_path is not None:
            prev_path = record.previous_path
            values.update(
                previous_path=str(prev_path),
                previous_directory=str(prev_path.parent),
                previous_filename=prev_path.name,
            )

        command = str(template).format(**values)
        return functools.partial(_run_command, command, record.path)

    return create_action


def _run_command(command: str, path: Path) -> None:
    logger.info("Executing shell command for %s: %s", path, command)
    subprocess.run(command, shell=True, check=True)


def _describe_change(record: ChangeRecord, root_path: Path) -> str:
    details = [f"kind={record.kind.value}", f"path={_relative(record.path, root_path)}"]
    if record.previous_path is not None:
        details.append(f"previous={_relative(record.previous_path, root_path)}")
    if record.is_directory:
        details.append("directory")
    return ", ".join(details)


def _relative(path: Path, root_path: Path) -> str:
    try:
        return str(path.relative_to(root_path))
    except ValueError:
        return str(path)
