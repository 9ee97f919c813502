"""Public data types — service configuration in, Service resources out."""

from dataclasses import dataclass, field
from enum import Enum

from svcgen.core.constants import SERVICE_API_VERSION, SERVICE_KIND


class Protocol(Enum):
    """Transport protocol of a service port."""
    TCP = "TCP"
    UDP = "UDP"


@dataclass(frozen=True)
class IntOrString:
    """Target port reference: a port number or a named container port.

    Exactly one of ``int_val`` / ``str_val`` is set; ``is_int`` tells which.
    """
    int_val: int | None = None
    str_val: str | None = None

    def __post_init__(self):
        if (self.int_val is None) == (self.str_val is None):
            raise ValueError("IntOrString needs exactly one of int_val / str_val")

    @classmethod
    def of(cls, value: "int | str | IntOrString") -> "IntOrString":
        """Wrap a plain int or str (bools are rejected, they are not ports)."""
        if isinstance(value, IntOrString):
            return value
        if isinstance(value, bool):
            raise TypeError(f"not a port reference: {value!r}")
        if isinstance(value, int):
            return cls(int_val=value)
        if isinstance(value, str):
            return cls(str_val=value)
        raise TypeError(f"not a port reference: {value!r}")

    @property
    def is_int(self) -> bool:
        return self.int_val is not None

    @property
    def value(self) -> int | str:
        return self.int_val if self.int_val is not None else self.str_val


@dataclass(frozen=True)
class PortSpec:
    """One configured port of a service."""
    port: int
    target_port: IntOrString
    protocol: Protocol = Protocol.TCP
    name: str | None = None
    node_port: int | None = None


@dataclass(frozen=True)
class ServiceConfig:
    """One logical service as declared in the project configuration."""
    name: str
    headless: bool = False
    type: str | None = None
    ports: tuple[PortSpec, ...] = ()


@dataclass(frozen=True)
class ServicePort:
    """A port entry of a generated Service spec."""
    port: int
    target_port: IntOrString
    protocol: str
    name: str | None = None
    node_port: int | None = None

    def to_dict(self) -> dict:
        d: dict = {}
        if self.name:
            d["name"] = self.name
        d["protocol"] = self.protocol
        d["port"] = self.port
        d["targetPort"] = self.target_port.value
        # 0 means "let the platform pick" and is kept when configured
        if self.node_port is not None:
            d["nodePort"] = self.node_port
        return d


@dataclass(frozen=True)
class ObjectMeta:
    name: str
    annotations: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ServiceSpec:
    ports: tuple[ServicePort, ...] | None = None
    cluster_ip: str | None = None
    type: str | None = None


@dataclass(frozen=True)
class ServiceResource:
    """A generated Kubernetes Service, ready for serialization."""
    metadata: ObjectMeta
    spec: ServiceSpec

    def to_dict(self) -> dict:
        """Render as a manifest mapping with Kubernetes field names."""
        meta: dict = {"name": self.metadata.name}
        if self.metadata.annotations:
            meta["annotations"] = dict(self.metadata.annotations)
        spec: dict = {}
        if self.spec.ports:
            spec["ports"] = [p.to_dict() for p in self.spec.ports]
        if self.spec.cluster_ip is not None:
            spec["clusterIP"] = self.spec.cluster_ip
        if self.spec.type is not None:
            spec["type"] = self.spec.type
        return {
            "apiVersion": SERVICE_API_VERSION,
            "kind": SERVICE_KIND,
            "metadata": meta,
            "spec": spec,
        }
