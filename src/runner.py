"""Run orchestration: document -> compiled nodes -> backend.

Stages run strictly in order and any failure halts the run:

1. Load primary document and merge the local override
2. Validate the merged document
3. Check the backend version constraint
4. Install missing plugins
5. Load hooks
6. Compile every node (hooks included)
7. Hand all compiled nodes to the backend

The backend receives nothing unless every node compiled.
"""

import logging
import time
from typing import Optional

from backends.base import Backend, ensure_plugins
from compiler import CompiledNode, compile_document
from config import Settings
from document import ConfigDocument, load_document
from hooks import HookRegistry, load_hooks
from validation import check_document, validate_backend_version

logger = logging.getLogger(__name__)


class Runner:
    """Drives a single boxfile run."""

    def __init__(
        self,
        settings: Settings,
        backend: Backend,
        skip_preflight: bool = False,
        registry: Optional[HookRegistry] = None,
    ):
        self.settings = settings
        self.backend = backend
        self.skip_preflight = skip_preflight
        self.registry = registry
        self.document: Optional[ConfigDocument] = None
        self.nodes: list[CompiledNode] = []

    def load(self) -> ConfigDocument:
        """Load, merge and validate the configuration document."""
        document = load_document(self.settings.config_file, self.settings.local_config_file)
        check_document(document)
        logger.info(f"Loaded {len(document.nodes)} nodes: {', '.join(document.node_names)}")
        self.document = document
        return document

    def preflight(self, document: ConfigDocument) -> None:
        """Check backend version and install required plugins."""
        if self.skip_preflight:
            logger.info("Skipping backend pre-flight checks")
            return
        validate_backend_version(self.backend, self.settings.version_constraint)
        installed = ensure_plugins(self.backend, document.plugins)
        if installed:
            logger.info(f"Installed plugins: {', '.join(installed)}")

    def compile(self, document: ConfigDocument) -> list[CompiledNode]:
        """Compile all nodes, loading hooks first if not supplied."""
        if self.registry is None:
            self.registry = load_hooks(self.settings.hooks_dir)
        self.nodes = compile_document(document, self.registry)
        return self.nodes

    def run(self) -> list[CompiledNode]:
        """Execute every stage and hand the result to the backend.

        Returns:
            The compiled nodes that were applied
        """
        start = time.time()
        document = self.load()
        self.preflight(document)
        nodes = self.compile(document)
        self.backend.apply(nodes)
        logger.info(f"Applied {len(nodes)} nodes via {self.backend.name} "
                    f"in {time.time() - start:.2f}s")
        return nodes
