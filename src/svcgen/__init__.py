"""svcgen — generate Kubernetes Service manifests and publish them to git.

Re-exports the public API.
"""

from svcgen.pacts.types import (
    Protocol, IntOrString, PortSpec, ServiceConfig,
    ServicePort, ObjectMeta, ServiceSpec, ServiceResource,
)
from svcgen.core.services import build_services, build_service, has_exposure
from svcgen.io.config import ConfigError, GitSettings
from svcgen.io.git import (
    GitError, GitRepo, Transport, UserDetails, configure_transport, find_repository,
)

__all__ = [
    # Types
    "Protocol",
    "IntOrString",
    "PortSpec",
    "ServiceConfig",
    "ServicePort",
    "ObjectMeta",
    "ServiceSpec",
    "ServiceResource",
    # Builder
    "build_services",
    "build_service",
    "has_exposure",
    # Config
    "ConfigError",
    "GitSettings",
    # Git publishing
    "GitError",
    "GitRepo",
    "Transport",
    "UserDetails",
    "configure_transport",
    "find_repository",
]
