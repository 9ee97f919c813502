"""Public contracts — configuration records and generated resources."""

from svcgen.pacts.types import (
    Protocol, IntOrString, PortSpec, ServiceConfig,
    ServicePort, ObjectMeta, ServiceSpec, ServiceResource,
)

__all__ = [
    "Protocol",
    "IntOrString",
    "PortSpec",
    "ServiceConfig",
    "ServicePort",
    "ObjectMeta",
    "ServiceSpec",
    "ServiceResource",
]
