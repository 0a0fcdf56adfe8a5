"""Vagrant backend adapter.

Wraps the vagrant executable for version and plugin management. The compiled
plan is written as JSON for the Vagrantfile shim to consume; boxfile never
drives VM lifecycle itself.
"""

import json
import logging
import re
from pathlib import Path
from typing import Optional

from backends.base import PluginInstallError
from common import run_command

logger = logging.getLogger(__name__)

# `vagrant plugin list` lines look like: "vagrant-hostmanager (1.8.9, global)"
PLUGIN_LINE_RE = re.compile(r'^([A-Za-z0-9_.\-]+)\s+\(')


class VagrantBackend:
    """Backend adapter backed by the vagrant CLI."""

    name = 'vagrant'

    def __init__(self, plan_file: Path, executable: str = 'vagrant',
                 cwd: Optional[Path] = None, timeout: int = 600):
        self.plan_file = Path(plan_file)
        self.executable = executable
        self.cwd = cwd
        self.timeout = timeout

    def _run(self, *args: str, timeout: Optional[int] = None) -> tuple[int, str, str]:
        return run_command([self.executable, *args], cwd=self.cwd,
                           timeout=timeout or self.timeout)

    def version(self) -> str:
        """Return raw `vagrant --version` output (e.g., 'Vagrant 2.4.1')."""
        rc, out, err = self._run('--version', timeout=30)
        if rc != 0:
            return ''
        return out.strip()

    def installed_plugins(self) -> list[str]:
        rc, out, err = self._run('plugin', 'list', timeout=60)
        if rc != 0:
            logger.warning(f"Cannot list plugins: {err.strip()}")
            return []
        plugins = []
        for line in out.splitlines():
            if match := PLUGIN_LINE_RE.match(line.strip()):
                plugins.append(match.group(1))
        return plugins

    def install_plugin(self, plugin: str) -> None:
        rc, out, err = self._run('plugin', 'install', plugin)
        if rc != 0:
            output = (err or out).strip()
            detail = output.splitlines()[-1] if output else f"exit code {rc}"
            raise PluginInstallError(f"Installation of plugin {plugin} failed: {detail}")
        logger.info(f"Installed plugin {plugin}")

    def apply(self, nodes: list) -> None:
        """Write the compiled plan for the Vagrantfile to pick up."""
        plan = {'nodes': [node.to_dict() for node in nodes]}
        self.plan_file.parent.mkdir(parents=True, exist_ok=True)
        self.plan_file.write_text(json.dumps(plan, indent=2) + '\n', encoding='utf-8')
        logger.info(f"Wrote plan for {len(nodes)} nodes to {self.plan_file}")
