"""Action factory contract and dynamic factory loading."""
from __future__ import annotations

import importlib
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, Optional, Union

from .config import FactoryConfig
from .events import Action, ChangeRecord

logger = logging.getLogger(__name__)


FactoryFunction = Callable[[ChangeRecord], Optional[Action]]
FactoryBuilder = Callable[[Path, Dict[str, Any]], Union["ActionFactory", FactoryFunction]]


class ActionFactory(ABC):
    """Maps a change to the action that should run for it.

    ``create_action`` is called eagerly for every notification and its result
    may be discarded if a later change supersedes it, so it must not perform
    the side effect itself. Returning ``None`` ignores the change.
    """

    @abstractmethod
    def create_action(self, record: ChangeRecord) -> Optional[Action]:
        raise NotImplementedError


class CallableActionFactory(ActionFactory):
    """Adapts a plain function to the :class:`ActionFactory` interface."""

    def __init__(self, func: FactoryFunction):
        self._func = func

    def create_action(self, record: ChangeRecord) -> Optional[Action]:
        return self._func(record)

    def __repr__(self) -> str:
        return f"CallableActionFactory({self._func!r})"


def as_action_factory(factory: Union[ActionFactory, FactoryFunction]) -> ActionFactory:
    if isinstance(factory, ActionFactory):
        return factory
    if callable(factory):
        return CallableActionFactory(factory)
    raise TypeError(f"Expected an ActionFactory or callable, got {type(factory).__name__}")


def load_action_factory(config: FactoryConfig, *, root_path: Path) -> ActionFactory:
    """Import the configured builder and let it construct the factory."""

    module = _import_module(config.module)
    try:
        builder = getattr(module, config.function)
    except AttributeError as exc:
        raise RuntimeError(
            f"Factory builder '{config.function}' not found in {config.module}"
        ) from exc

    if not callable(builder):
        raise RuntimeError(
            f"Factory builder '{config.function}' in {config.module} is not callable"
        )

    options = dict(config.options or {})
    factory = as_action_factory(builder(root_path, options))
    logger.info("Loaded action factory %s.%s -> %r", config.module, config.function, factory)
    return factory


def _import_module(module_path: str) -> ModuleType:
    try:
        return importlib.import_module(module_path)
    except ImportError as exc:
        raise RuntimeError(f"Unable to import factory module '{module_path}'") from exc
