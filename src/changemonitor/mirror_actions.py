"""Keep a mirror directory in step with the watched source tree."""
from __future__ import annotations

import functools
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

from .actions import ActionFactory
from .events import Action, ChangeKind, ChangeRecord

logger = logging.getLogger(__name__)


class MirrorActionFactory(ActionFactory):
    """Produces actions that replay source changes onto ``target_root``."""

    def __init__(self, source_root: Path, target_root: Path):
        self.source_root = Path(source_root)
        self.target_root = Path(target_root)

    def __repr__(self) -> str:
        return f"MirrorActionFactory({self.source_root} -> {self.target_root})"

    def create_action(self, record: ChangeRecord) -> Optional[Action]:
        target = self._mirrored(record.path)
        if target is None:
            return None

        if record.kind in (ChangeKind.CREATED, ChangeKind.MODIFIED):
            return functools.partial(_copy_into_mirror, record.path, target)

        if record.kind is ChangeKind.DELETED:
            return functools.partial(_remove_from_mirror, target)

        previous_target = self._mirrored(record.previous_path) if record.previous_path else None
        return functools.partial(_rename_in_mirror, record.path, previous_target, target)

    def _mirrored(self, path: Path) -> Optional[Path]:
        if _is_within(path, self.target_root):
            return None
        try:
            relative = path.relative_to(self.source_root)
        except ValueError:
            return None
        if not relative.parts:
            return None
        return self.target_root / relative


def mirror_factory(root_path: Path, options: Dict[str, Any]) -> MirrorActionFactory:
    """Build a mirror factory from configuration options (``target`` is required)."""

    target_option = options.get("target")
    if not isinstance(target_option, str) or not target_option:
        raise ValueError("mirror_factory requires a 'target' option")

    target = Path(target_option)
    if not target.is_absolute():
        target = (root_path / target).resolve()
    return MirrorActionFactory(root_path, target)


def _copy_into_mirror(source: Path, target: Path) -> None:
    if source.is_dir():
        target.mkdir(parents=True, exist_ok=True)
        return
    if not source.exists():
        logger.debug("Source %s vanished before it could be mirrored", source)
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)
    logger.info("Mirrored %s -> %s", source, target)


def _remove_from_mirror(target: Path) -> None:
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()
    else:
        return
    logger.info("Removed %s from mirror", target)


def _rename_in_mirror(source: Path, previous_target: Optional[Path], target: Path) -> None:
    stale = previous_target is not None and previous_target != target and (
        previous_target.exists() or previous_target.is_symlink()
    )

    if source.exists():
        # Source content wins over the old mirrored copy.
        if source.is_dir():
            shutil.copytree(source, target, dirs_exist_ok=True)
            logger.info("Mirrored directory %s -> %s", source, target)
        else:
            _copy_into_mirror(source, target)
        if stale:
            _remove_from_mirror(previous_target)
        return

    if stale:
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        shutil.move(str(previous_target), str(target))
        logger.info("Renamed %s -> %s in mirror", previous_target, target)
        return

    logger.debug("Renamed source %s vanished before it could be mirrored", source)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
