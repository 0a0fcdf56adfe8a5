"""External hook functions.

Hooks are plain Python functions defined in files under the hooks directory
(hooks/*.py by default). Each public function defined in such a file is
registered under its own name and can be referenced from a node's
external_functions list:

    # hooks/disk.py
    def add_data_disk(node):
        node.add(SetProviderProperty('virtualbox', 'disk', '10GB'))

    # vagrant.yaml
    nodes:
      db:
        external_functions: [add_data_disk]

A hook receives the in-progress NodeHandle and may change its operations.
"""

import importlib.util
import inspect
import logging
from pathlib import Path
from typing import Callable, Optional

from common import FatalError

logger = logging.getLogger(__name__)

Hook = Callable[..., None]


class UnknownHookError(FatalError):
    """A node references a hook with no registered implementation."""


class HookLoadError(FatalError):
    """A hook definition file could not be imported."""


class HookRegistry:
    """Name -> hook function table, built once before compilation."""

    def __init__(self):
        self._hooks: dict[str, Hook] = {}

    def register(self, name: str, func: Hook) -> Hook:
        if name in self._hooks and self._hooks[name] is not func:
            logger.warning(f"Hook '{name}' redefined, using the later definition")
        self._hooks[name] = func
        return func

    def get(self, name: str) -> Hook:
        if name not in self._hooks:
            available = ', '.join(self.names()) or 'none'
            raise UnknownHookError(f"Unknown hook: {name}. Available: {available}")
        return self._hooks[name]

    def names(self) -> list[str]:
        return sorted(self._hooks)

    def __contains__(self, name: str) -> bool:
        return name in self._hooks

    def __len__(self) -> int:
        return len(self._hooks)


def _load_module(path: Path):
    """Import a hook file as a standalone module."""
    module_name = f"boxfile_hooks_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise HookLoadError(f"Could not create module spec for {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise HookLoadError(f"Failed to load hooks from {path}: {e}") from e
    return module


def load_hooks(directory: Path, registry: Optional[HookRegistry] = None) -> HookRegistry:
    """Register every public function defined in directory/*.py.

    Files are loaded in name order; files starting with '_' are skipped.
    Imported helpers are not registered, only functions defined in the file.

    Args:
        directory: Hooks directory (a missing directory yields no hooks)
        registry: Registry to add to (a new one when None)

    Returns:
        The populated registry
    """
    registry = registry if registry is not None else HookRegistry()
    directory = Path(directory)

    if not directory.is_dir():
        logger.debug(f"Hooks directory does not exist: {directory}")
        return registry

    for path in sorted(directory.glob('*.py')):
        if path.name.startswith('_'):
            continue
        module = _load_module(path)
        for name, func in inspect.getmembers(module, inspect.isfunction):
            if name.startswith('_') or func.__module__ != module.__name__:
                continue
            registry.register(name, func)
            logger.debug(f"Registered hook '{name}' from {path.name}")

    logger.info(f"Loaded {len(registry)} hooks from {directory}")
    return registry


def dispatch_hooks(handle, names: list[str], registry: HookRegistry) -> None:
    """Invoke the named hooks in order with the node handle.

    Raises:
        UnknownHookError: If a name has no registered hook
    """
    for name in names:
        hook = registry.get(str(name))
        logger.debug(f"Running hook '{name}' for node '{handle.name}'")
        hook(handle)
