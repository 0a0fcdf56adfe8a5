"""Dry-run backend: previews compiled operations without changing anything."""

import logging
import sys
from typing import Optional, TextIO

logger = logging.getLogger(__name__)


class DryRunBackend:
    """Backend that prints what would be handed to the real backend."""

    name = 'dry-run'

    def __init__(self, version: str = '', plugins: Optional[list[str]] = None,
                 stream: Optional[TextIO] = None):
        self._version = version
        self._plugins = list(plugins or [])
        self.stream = stream
        self.requested_plugins: list[str] = []
        self.applied: list = []

    def version(self) -> str:
        return self._version

    def installed_plugins(self) -> list[str]:
        return list(self._plugins)

    def install_plugin(self, plugin: str) -> None:
        logger.info(f"[dry-run] Would install plugin {plugin}")
        self.requested_plugins.append(plugin)

    def apply(self, nodes: list) -> None:
        self.applied = list(nodes)
        out = self.stream or sys.stdout

        print("", file=out)
        print("═══════════════════════════════════════════════════════════════", file=out)
        print("  DRY-RUN: boxfile apply", file=out)
        print("═══════════════════════════════════════════════════════════════", file=out)
        print("", file=out)

        op_count = 0
        for node in nodes:
            print(f"Node: {node.name}", file=out)
            if node.autostart is not None:
                print(f"  autostart: {node.autostart}", file=out)
            for op in node.operations:
                fields = {k: v for k, v in op.to_dict().items() if k != 'op'}
                details = ', '.join(f"{k}={v!r}" for k, v in fields.items())
                print(f"  [ OK ] {op.kind}({details})", file=out)
                op_count += 1
            print("", file=out)

        print("═══════════════════════════════════════════════════════════════", file=out)
        print(f"  Summary: {len(nodes)} nodes, {op_count} operations", file=out)
        print("  Mode: DRY-RUN (no changes made)", file=out)
        print("═══════════════════════════════════════════════════════════════", file=out)
