"""Node compilation: declarative node attributes -> ordered operations.

Categories are emitted in a fixed order for every node:

    identity -> networks -> forwarded ports -> provisioners
             -> providers (+ tuning) -> synced folders

Extension hooks run after all of the above (see hooks.dispatch_hooks).
Every category is optional; a missing attribute emits nothing. Network,
provisioner and provider type names are passed through uninterpreted.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from config import ConfigError
from document import ConfigDocument, NodeSpec
from hooks import HookRegistry, dispatch_hooks
from operations import (
    AddForwardedPort,
    AddNetwork,
    AddProvisioner,
    AddSyncedFolder,
    ConfigOperation,
    SetBox,
    SetBoxURL,
    SetHostname,
    SetProviderProperty,
    SetProvisionerArguments,
    SetProvisionerProperty,
    TuneProvider,
)

logger = logging.getLogger(__name__)

# Providers that always receive memory/cpus/name tuning, in emission order
TUNED_PROVIDERS = ('virtualbox', 'vmware_desktop', 'parallels')

# Provider that additionally accepts a chipset setting
CHIPSET_PROVIDER = 'virtualbox'

# Provisioner parameter holding argument descriptors
ARGUMENTS_KEY = 'arguments'


@dataclass
class NodeHandle:
    """In-progress configuration of one node, passed to hooks.

    Hooks may read the attributes and append or replace operations.
    """
    name: str
    spec: NodeSpec
    operations: list[ConfigOperation] = field(default_factory=list)

    def add(self, operation: ConfigOperation) -> None:
        """Append an operation."""
        self.operations.append(operation)

    def find(self, kind: str) -> list[ConfigOperation]:
        """Return operations of the given kind, in order."""
        return [op for op in self.operations if op.kind == kind]


@dataclass
class CompiledNode:
    """Result of compiling one node, ready for the backend."""
    name: str
    operations: list[ConfigOperation]
    autostart: Optional[bool] = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {'name': self.name}
        if self.autostart is not None:
            d['autostart'] = self.autostart
        d['operations'] = [op.to_dict() for op in self.operations]
        return d


def normalize_key(key: Any) -> str:
    """Convert a YAML key to keyword form (``host-ip`` -> ``host_ip``)."""
    return str(key).replace('-', '_')


def normalize_keys(params: dict) -> dict:
    """Normalize the top-level keys of a mapping; nested values are untouched."""
    return {normalize_key(k): v for k, v in params.items()}


def normalize_arguments(descriptors: Optional[list]) -> list:
    """Flatten argument descriptors into a positional argument vector.

    Each descriptor may carry ``name`` and/or ``value``. Descriptor order is
    kept, and within a descriptor the name comes before the value.

    Example:
        [{'name': '-v'}, {'value': 'x'}, {'name': '--mode', 'value': 'fast'}]
        -> ['-v', 'x', '--mode', 'fast']
    """
    args: list = []
    for descriptor in descriptors or []:
        if not isinstance(descriptor, dict):
            continue
        if 'name' in descriptor:
            args.append(descriptor['name'])
        if 'value' in descriptor:
            args.append(descriptor['value'])
    return args


def _single_entries(entries: list):
    """Yield (type, params) pairs from a list of single-entry mappings."""
    for entry in entries:
        if isinstance(entry, dict):
            yield from entry.items()
        else:
            # Bare string entry, e.g. "- private_network"
            yield entry, None


def _mapping(spec: NodeSpec, what: str, value) -> dict:
    """Return value as a mapping (None means empty), or raise ConfigError."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(
            f"Node '{spec.name}': {what} must be a mapping, got {type(value).__name__}"
        )
    return value


def compile_identity(spec: NodeSpec, boxes: dict) -> list[ConfigOperation]:
    ops: list[ConfigOperation] = [SetBox(spec.box)]
    if spec.box is not None and spec.box in boxes:
        ops.append(SetBoxURL(boxes[spec.box]))
    ops.append(SetHostname(spec.hostname))
    return ops


def compile_networks(spec: NodeSpec) -> list[ConfigOperation]:
    ops: list[ConfigOperation] = []
    for network_type, params in _single_entries(spec.networks):
        if isinstance(params, dict):
            params = normalize_keys(params)
        ops.append(AddNetwork(str(network_type), params))
    return ops


def compile_forwarded_ports(spec: NodeSpec) -> list[ConfigOperation]:
    return [AddForwardedPort(normalize_keys(_mapping(spec, f"forwarded_ports[{i}]", port)))
            for i, port in enumerate(spec.forwarded_ports)]


def compile_provisioners(spec: NodeSpec) -> list[ConfigOperation]:
    """Emit provisioner settings, one operation per parameter.

    Each entry opens with AddProvisioner; its operations carry the entry's
    position so that two entries of the same type stay distinct. The
    ``arguments`` parameter is flattened with normalize_arguments.
    """
    ops: list[ConfigOperation] = []
    for index, entry in enumerate(spec.provisioners):
        for provisioner, params in _single_entries([entry]):
            provisioner = str(provisioner)
            params = _mapping(spec, f"provisioner '{provisioner}' parameters", params)
            ops.append(AddProvisioner(provisioner, index))
            for key, value in params.items():
                if key == ARGUMENTS_KEY:
                    ops.append(SetProvisionerArguments(provisioner, index,
                                                       normalize_arguments(value)))
                else:
                    ops.append(SetProvisionerProperty(provisioner, index, str(key), value))
    return ops


def compile_providers(name: str, spec: NodeSpec) -> list[ConfigOperation]:
    """Emit declared provider settings, then unconditional tuning.

    Tuning for TUNED_PROVIDERS is emitted whether or not the node declares
    those providers, after any declared settings for them.
    """
    ops: list[ConfigOperation] = []
    for provider, params in spec.providers.items():
        params = _mapping(spec, f"provider '{provider}' parameters", params)
        for key, value in params.items():
            ops.append(SetProviderProperty(str(provider), str(key), value))

    for provider in TUNED_PROVIDERS:
        ops.append(TuneProvider(
            provider=provider,
            memory=spec.memory,
            cpus=spec.cpus,
            name=name,
            chipset=spec.chipset if provider == CHIPSET_PROVIDER else None,
        ))
    return ops


def compile_synced_folders(spec: NodeSpec) -> list[ConfigOperation]:
    ops: list[ConfigOperation] = []
    for i, folder in enumerate(spec.synced_folders):
        folder = _mapping(spec, f"synced_folders[{i}]", folder)
        ops.append(AddSyncedFolder(
            host=folder.get('host'),
            guest=folder.get('guest'),
            create=folder.get('create'),
            owner=folder.get('owner'),
            group=folder.get('group'),
        ))
    return ops


def compile_node(name: str, spec: NodeSpec, boxes: Optional[dict] = None) -> list[ConfigOperation]:
    """Compile one node's attributes into an ordered operation sequence.

    Args:
        name: Node name (used as the provider display name)
        spec: Node attributes
        boxes: Box catalog for box URL lookup

    Returns:
        Operations in category order (hooks not included)
    """
    ops: list[ConfigOperation] = []
    ops.extend(compile_identity(spec, boxes or {}))
    ops.extend(compile_networks(spec))
    ops.extend(compile_forwarded_ports(spec))
    ops.extend(compile_provisioners(spec))
    ops.extend(compile_providers(name, spec))
    ops.extend(compile_synced_folders(spec))
    return ops


def compile_document(document: ConfigDocument,
                     registry: Optional[HookRegistry] = None) -> list[CompiledNode]:
    """Compile every node in definition order, running its hooks.

    Any failure propagates before a result is returned, so callers never see
    a partially compiled document.
    """
    registry = registry or HookRegistry()
    compiled = []
    for name, spec in document.nodes.items():
        handle = NodeHandle(name=name, spec=spec, operations=compile_node(name, spec, document.boxes))
        if spec.external_functions:
            dispatch_hooks(handle, spec.external_functions, registry)
        logger.debug(f"Compiled node '{name}': {len(handle.operations)} operations")
        compiled.append(CompiledNode(name=name, operations=handle.operations, autostart=spec.autostart))
    return compiled
