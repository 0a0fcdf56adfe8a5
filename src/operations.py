"""Typed configuration operations emitted by the node compiler.

Operations are plain data. The backend adapter resolves each one against its
own configuration model; nothing here reflects on backend objects. Parameter
values are carried exactly as parsed from YAML.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ConfigOperation:
    """Base for all operations."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        """Serialize with the operation kind first."""
        return {'op': self.kind, **asdict(self)}


@dataclass(frozen=True)
class SetBox(ConfigOperation):
    box: Optional[str]


@dataclass(frozen=True)
class SetBoxURL(ConfigOperation):
    url: str


@dataclass(frozen=True)
class SetHostname(ConfigOperation):
    hostname: Optional[str]


@dataclass(frozen=True)
class AddNetwork(ConfigOperation):
    network_type: str
    params: Optional[dict] = None


@dataclass(frozen=True)
class AddForwardedPort(ConfigOperation):
    params: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AddProvisioner(ConfigOperation):
    """Start of one provisioner entry.

    index is the entry's position in the node's provisioners list; the
    property and argument operations that follow carry the same index.
    """
    provisioner: str
    index: int


@dataclass(frozen=True)
class SetProvisionerProperty(ConfigOperation):
    provisioner: str
    index: int
    key: str
    value: Any = None


@dataclass(frozen=True)
class SetProvisionerArguments(ConfigOperation):
    provisioner: str
    index: int
    arguments: list = field(default_factory=list)


@dataclass(frozen=True)
class SetProviderProperty(ConfigOperation):
    provider: str
    key: str
    value: Any = None


@dataclass(frozen=True)
class TuneProvider(ConfigOperation):
    """Resource tuning for a known provider.

    chipset is only meaningful for providers that support it and is None
    when the node does not set one.
    """
    provider: str
    memory: Optional[int]
    cpus: Optional[int]
    name: str
    chipset: Optional[str] = None

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.chipset is None:
            del d['chipset']
        return d


@dataclass(frozen=True)
class AddSyncedFolder(ConfigOperation):
    host: Optional[str]
    guest: Optional[str]
    create: Optional[bool] = None
    owner: Optional[str] = None
    group: Optional[str] = None


def operations_to_dicts(operations: list[ConfigOperation]) -> list[dict]:
    """Serialize a sequence of operations for JSON output."""
    return [op.to_dict() for op in operations]
