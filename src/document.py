"""Configuration document loading.

A project is described by a primary YAML document (vagrant.yaml) and an
optional local override (vagrant.local.yaml) with the same schema. The
override is deep-merged over the primary.

Top-level sections:
- boxes: box name -> box URL catalog
- nodes: node name -> node attributes (required, non-empty)
- plugins: backend plugins required before compiling
- defaults: reserved; carried through but not applied to nodes
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from config import ConfigError, EmptyConfigError, MissingConfigError, _parse_yaml
from merge import deep_merge

logger = logging.getLogger(__name__)

# Node attributes and the container type each must have
SEQUENCE_ATTRIBUTES = ('networks', 'forwarded_ports', 'synced_folders', 'provisioners',
                       'external_functions')
MAPPING_ATTRIBUTES = ('providers',)


def _container(name: str, data: dict, key: str, expected: type):
    """Return data[key] (empty when absent or null), checking its type."""
    value = data.get(key)
    if value is None:
        return expected()
    if not isinstance(value, expected):
        kind = 'list' if expected is list else 'mapping'
        raise ConfigError(
            f"Node '{name}': '{key}' must be a {kind}, got {type(value).__name__}"
        )
    return value


@dataclass
class NodeSpec:
    """Declared attributes of one node.

    Every attribute is optional. Nested values are kept exactly as parsed
    from YAML; they are interpreted only by the compiler and the backend.

    Attributes:
        name: Node identifier, also the default display name
        box: Box identifier (looked up in the box catalog)
        hostname: Guest hostname
        autostart: Whether the backend should start the node automatically
        memory: Memory in MB
        cpus: CPU count
        chipset: Chipset for providers that support it
        networks: Single-entry mappings of network type -> params
        forwarded_ports: Port forwarding parameter mappings
        synced_folders: Mappings with host, guest, create, owner, group
        provisioners: Single-entry mappings of provisioner type -> params
        providers: Provider type -> params
        external_functions: Hook names run after compilation
    """
    name: str
    box: Optional[str] = None
    hostname: Optional[str] = None
    autostart: Optional[bool] = None
    memory: Optional[int] = None
    cpus: Optional[int] = None
    chipset: Optional[str] = None
    networks: list = field(default_factory=list)
    forwarded_ports: list = field(default_factory=list)
    synced_folders: list = field(default_factory=list)
    provisioners: list = field(default_factory=list)
    providers: dict = field(default_factory=dict)
    external_functions: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, name: str, data: Optional[dict]) -> 'NodeSpec':
        """Create NodeSpec from a node's attribute mapping."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Node '{name}' must be a mapping, got {type(data).__name__}")
        containers = {key: _container(name, data, key, list) for key in SEQUENCE_ATTRIBUTES}
        containers.update({key: _container(name, data, key, dict) for key in MAPPING_ATTRIBUTES})
        return cls(
            name=str(name),
            box=data.get('box'),
            hostname=data.get('hostname'),
            autostart=data.get('autostart'),
            memory=data.get('memory'),
            cpus=data.get('cpus'),
            chipset=data.get('chipset'),
            **containers,
        )


@dataclass
class ConfigDocument:
    """Merged configuration document.

    Attributes:
        nodes: Node specs in definition order
        boxes: Box name -> URL catalog
        plugins: Required backend plugins
        defaults: Reserved section, carried through unchanged
        data: The merged mapping the document was built from
        source_paths: Files the document was loaded from (for messages)
    """
    nodes: dict[str, NodeSpec] = field(default_factory=dict)
    boxes: dict[str, str] = field(default_factory=dict)
    plugins: list[str] = field(default_factory=list)
    defaults: dict = field(default_factory=dict)
    data: dict = field(default_factory=dict)
    source_paths: list[Path] = field(default_factory=list)

    @property
    def node_names(self) -> list[str]:
        """Node names in definition order."""
        return list(self.nodes)

    def to_dict(self) -> dict:
        """Return the merged mapping."""
        return self.data

    @classmethod
    def from_dict(cls, data: dict, source_paths: Optional[list[Path]] = None) -> 'ConfigDocument':
        """Create ConfigDocument from a merged mapping.

        Presence of nodes is not checked here; see validation.check_document.
        """
        nodes_data = data.get('nodes') or {}
        if not isinstance(nodes_data, dict):
            raise ConfigError("Section 'nodes' must be a mapping of node name to attributes")

        # dicts keep YAML order, which is the definition order
        nodes = {str(name): NodeSpec.from_dict(name, attrs) for name, attrs in nodes_data.items()}

        return cls(
            nodes=nodes,
            boxes=data.get('boxes') or {},
            plugins=[str(p) for p in data.get('plugins') or []],
            defaults=data.get('defaults') or {},
            data=data,
            source_paths=list(source_paths or []),
        )


class DocumentLoader:
    """Loads primary and override documents from disk."""

    def load_file(self, path: Path) -> Optional[dict]:
        """Load one YAML document.

        Args:
            path: Path to the YAML file

        Returns:
            Parsed mapping, or None when the file holds no content

        Raises:
            MissingConfigError: If the file does not exist
            ConfigError: If the YAML is invalid or not a mapping
        """
        if not path.exists():
            raise MissingConfigError(f"Configuration file not found: {path}")

        data = _parse_yaml(path)
        if not data:
            return None

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration {path} must be a YAML object (dict)")

        return data

    def load_primary(self, path: Path) -> dict:
        """Load the primary document, which must exist and be non-empty."""
        data = self.load_file(path)
        if data is None:
            raise EmptyConfigError(f"Configuration file is empty: {path}")
        return data

    def load_override(self, path: Optional[Path]) -> Optional[dict]:
        """Load the override document; missing or empty means no override."""
        if path is None or not path.exists():
            return None
        data = self.load_file(path)
        if data is None:
            logger.debug(f"Override {path} is empty, ignoring")
        return data


def load_document(primary: Path, secondary: Optional[Path] = None) -> ConfigDocument:
    """Load, merge and wrap the configuration documents.

    Args:
        primary: Primary document path (required)
        secondary: Optional override document path

    Returns:
        ConfigDocument built from the merged mapping

    Raises:
        MissingConfigError: If the primary document does not exist
        EmptyConfigError: If the primary document is empty
        ConfigError: On invalid YAML or structure
    """
    loader = DocumentLoader()
    primary = Path(primary)
    data = loader.load_primary(primary)
    sources = [primary]
    logger.debug(f"Loaded {primary}")

    override = loader.load_override(Path(secondary) if secondary else None)
    if override is not None:
        data = deep_merge(data, override)
        sources.append(Path(secondary))
        logger.info(f"Applied local overrides from {secondary}")

    return ConfigDocument.from_dict(data, source_paths=sources)
