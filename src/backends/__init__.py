"""Backend adapters."""

from backends.base import (
    Backend,
    PluginInstallError,
    VersionConstraintError,
    ensure_plugins,
)
from backends.dryrun import DryRunBackend
from backends.vagrant import VagrantBackend

__all__ = [
    'Backend',
    'PluginInstallError',
    'VersionConstraintError',
    'ensure_plugins',
    'DryRunBackend',
    'VagrantBackend',
]
