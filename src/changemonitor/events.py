"""Change records shared across monitor components."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple


class ChangeKind(str, Enum):
    """Kinds of filesystem changes delivered by the notification source."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


Fingerprint = Tuple[str, str, Optional[str]]

Action = Callable[[], None]


@dataclass(frozen=True)
class ChangeRecord:
    """A single change observed in the watched directory tree."""

    kind: ChangeKind
    path: Path
    previous_path: Optional[Path] = None
    is_directory: bool = False

    def __post_init__(self) -> None:
        if self.kind is ChangeKind.RENAMED and self.previous_path is None:
            raise ValueError("Renamed changes require a previous_path")
        if self.kind is not ChangeKind.RENAMED and self.previous_path is not None:
            raise ValueError(f"previous_path is only valid for renames, not {self.kind.value}")

    @property
    def fingerprint(self) -> Fingerprint:
        """Identity used to coalesce notifications for the same logical change."""

        previous = str(self.previous_path) if self.previous_path is not None else None
        return (self.kind.value, str(self.path), previous)

    @property
    def obsoletes(self) -> Tuple[Fingerprint, ...]:
        """Fingerprints of pending changes that this change makes pointless.

        A deletion settles the fate of its path, so pending creations and
        modifications of that path are dropped in its favour.
        """

        if self.kind is not ChangeKind.DELETED:
            return ()
        path = str(self.path)
        return (
            (ChangeKind.CREATED.value, path, None),
            (ChangeKind.MODIFIED.value, path, None),
        )

    def describe(self) -> str:
        if self.previous_path is not None:
            return f"{self.kind.value}: {self.previous_path} -> {self.path}"
        return f"{self.kind.value}: {self.path}"
