"""Service resource building — ServiceConfig records to K8s Service resources."""

from collections.abc import Mapping, Sequence

from svcgen.pacts.types import (
    ObjectMeta, PortSpec, ServiceConfig, ServicePort, ServiceResource, ServiceSpec,
)
from svcgen.core.constants import HEADLESS_CLUSTER_IP


def _map_port(port: PortSpec) -> ServicePort:
    """Map a configured port to a Service port entry, field for field."""
    return ServicePort(
        name=port.name,
        protocol=port.protocol.name,
        target_port=port.target_port,
        port=port.port,
        node_port=port.node_port,
    )


def has_exposure(config: ServiceConfig, ports: Sequence) -> bool:
    """Whether a service has anything to expose (and so gets a resource).

    Headless services are always emitted, since their DNS records are
    useful even without ports.
    """
    return config.headless or len(ports) > 0


def build_services(configs: Sequence[ServiceConfig],
                   annotations: Mapping[str, str]) -> list[ServiceResource]:
    """Build Service resources for every config that exposes something.

    Output order follows *configs*; configs without ports that are not
    headless are skipped. Each resource gets its own copy of *annotations*.
    """
    result = []
    for config in configs:
        ports = tuple(_map_port(p) for p in config.ports)
        if not has_exposure(config, ports):
            continue
        spec = ServiceSpec(
            ports=ports or None,
            cluster_ip=HEADLESS_CLUSTER_IP if config.headless else None,
            type=config.type if config.type and config.type.strip() else None,
        )
        metadata = ObjectMeta(name=config.name, annotations=dict(annotations))
        result.append(ServiceResource(metadata=metadata, spec=spec))
    return result


def build_service(config: ServiceConfig,
                  annotations: Mapping[str, str]) -> ServiceResource | None:
    """Build the resource for a single config, or None if it exposes nothing."""
    built = build_services([config], annotations)
    return built[0] if built else None
