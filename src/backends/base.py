"""Backend adapter interface.

The backend is the external system that materializes VMs from compiled
operations. boxfile only talks to it through this narrow interface: version
query, plugin management, and handing over the compiled nodes.
"""

import logging
from typing import Protocol, runtime_checkable

from common import FatalError

logger = logging.getLogger(__name__)


class PluginInstallError(FatalError):
    """A required backend plugin could not be installed."""


class VersionConstraintError(FatalError):
    """Backend version is outside the supported range."""


@runtime_checkable
class Backend(Protocol):
    """Protocol for backend adapters.

    Class attributes:
        name: Backend identifier (e.g., 'vagrant', 'dry-run')
    """
    name: str

    def version(self) -> str:
        """Return the backend version string (e.g., '2.4.1')."""
        ...

    def installed_plugins(self) -> list[str]:
        """Return names of installed plugins."""
        ...

    def install_plugin(self, plugin: str) -> None:
        """Install a plugin; raise PluginInstallError on failure."""
        ...

    def apply(self, nodes: list) -> None:
        """Hand over fully compiled nodes (list of CompiledNode)."""
        ...


def ensure_plugins(backend: Backend, plugins: list[str]) -> list[str]:
    """Install every required plugin the backend does not have yet.

    Args:
        backend: Backend adapter
        plugins: Required plugin names

    Returns:
        Names of plugins that were installed

    Raises:
        PluginInstallError: On the first plugin that fails to install
    """
    if not plugins:
        return []

    installed = set(backend.installed_plugins())
    newly_installed = []
    for plugin in plugins:
        if plugin in installed:
            logger.debug(f"Plugin {plugin} already installed")
            continue
        logger.info(f"Installing plugin {plugin}...")
        try:
            backend.install_plugin(plugin)
        except PluginInstallError:
            raise
        except Exception as e:
            raise PluginInstallError(f"Installation of plugin {plugin} failed: {e}") from e
        installed.add(plugin)
        newly_installed.append(plugin)
    return newly_installed
