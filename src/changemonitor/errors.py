"""Failures surfaced through the failure reporter."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .events import ChangeRecord, Fingerprint


class MonitorError(Exception):
    """Base class wrapping an exception raised inside the pipeline."""

    def __init__(self, message: str, original: BaseException):
        super().__init__(message)
        self.original = original
        self.__cause__ = original


class FactoryError(MonitorError):
    """Raised while deriving an action from a change record."""

    def __init__(self, record: "ChangeRecord", original: BaseException):
        super().__init__(f"Action factory failed for {record.describe()}: {original!r}", original)
        self.record = record


class ActionExecutionError(MonitorError):
    """Raised while invoking a drained action."""

    def __init__(self, fingerprint: "Fingerprint", original: BaseException):
        kind, path, previous = fingerprint
        target = f"{previous} -> {path}" if previous else path
        super().__init__(f"Action for {kind}: {target} failed: {original!r}", original)
        self.fingerprint = fingerprint


class SchedulingFault(MonitorError):
    """Raised inside the deferred drain outside the per-action boundary."""

    def __init__(self, original: BaseException):
        super().__init__(f"Deferred drain failed: {original!r}", original)
