"""Configuration file handling — load/save svcgen.yaml, parse service records."""

import os
from dataclasses import dataclass

import yaml

from svcgen.pacts.types import IntOrString, PortSpec, Protocol, ServiceConfig
from svcgen.core.constants import (
    DEFAULT_COMMIT_MESSAGE, DEFAULT_MANIFEST_FILE, DEFAULT_REMOTE, PASSWORD_ENV_VAR,
)


class ConfigError(ValueError):
    """Raised when svcgen.yaml does not describe valid services."""


@dataclass
class GitSettings:
    """The ``git:`` section of svcgen.yaml."""
    commit: bool = False
    push: bool = True
    remote: str = DEFAULT_REMOTE
    remote_url: str | None = None
    branch: str | None = None
    message: str = DEFAULT_COMMIT_MESSAGE
    author_name: str | None = None
    author_email: str | None = None
    username: str | None = None
    password: str | None = None
    ssh_private_key: str | None = None
    ssh_public_key: str | None = None
    strict_host_key_checking: bool = False
    trust_all_ssl_certificates: bool = False


def load_config(path: str) -> dict:
    """Load svcgen.yaml or return empty config."""
    if os.path.exists(path):
        with open(path, encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    else:
        cfg = {}
    if not isinstance(cfg, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    cfg.setdefault("annotations", {})
    cfg.setdefault("services", [])
    cfg.setdefault("output", DEFAULT_MANIFEST_FILE)
    cfg.setdefault("git", {})
    return cfg


def save_config(path: str, config: dict) -> None:
    """Write svcgen.yaml."""
    header = "# Service manifest configuration for svcgen\n\n"
    with open(path, "w", encoding="utf-8") as f:
        f.write(header)
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def starter_config(name: str) -> dict:
    """A minimal config exposing one HTTP service, written by ``--init``."""
    return {
        "annotations": {},
        "services": [{
            "name": name,
            "ports": [{"name": "http", "port": 80, "targetPort": 8080}],
        }],
        "output": DEFAULT_MANIFEST_FILE,
    }


def _parse_protocol(raw, svc_name: str) -> Protocol:
    """Match a protocol name case-insensitively (default TCP)."""
    if raw is None:
        return Protocol.TCP
    try:
        return Protocol[str(raw).upper()]
    except KeyError:
        raise ConfigError(f"service '{svc_name}': unknown protocol '{raw}'") from None


def _parse_int(raw, what: str, svc_name: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ConfigError(f"service '{svc_name}': {what} must be an integer, got {raw!r}")
    return raw


def _parse_port(raw: dict, svc_name: str) -> PortSpec:
    """Convert one raw ``ports`` entry into a PortSpec."""
    if not isinstance(raw, dict):
        raise ConfigError(f"service '{svc_name}': port entries must be mappings")
    port = _parse_int(raw.get("port"), "port", svc_name)
    # K8s semantics: targetPort defaults to port
    target = raw.get("targetPort", port)
    if isinstance(target, bool) or not isinstance(target, (int, str)):
        raise ConfigError(
            f"service '{svc_name}': targetPort must be a number or a port name, got {target!r}")
    node_port = raw.get("nodePort")
    if node_port is not None:
        node_port = _parse_int(node_port, "nodePort", svc_name)
    return PortSpec(
        name=raw.get("name"),
        protocol=_parse_protocol(raw.get("protocol"), svc_name),
        target_port=IntOrString.of(target),
        port=port,
        node_port=node_port,
    )


def parse_services(config: dict) -> list[ServiceConfig]:
    """Convert the ``services:`` list of a loaded config into ServiceConfigs."""
    services = []
    for i, raw in enumerate(config.get("services") or []):
        if not isinstance(raw, dict) or not raw.get("name"):
            raise ConfigError(f"services[{i}]: every service needs a name")
        name = str(raw["name"])
        svc_type = raw.get("type")
        services.append(ServiceConfig(
            name=name,
            headless=bool(raw.get("headless", False)),
            type=str(svc_type) if svc_type is not None else None,
            ports=tuple(_parse_port(p, name) for p in raw.get("ports") or []),
        ))
    return services


def parse_annotations(config: dict) -> dict[str, str]:
    """Return the shared annotations with keys and values as strings."""
    raw = config.get("annotations") or {}
    if not isinstance(raw, dict):
        raise ConfigError("annotations must be a mapping")
    empty = [str(k) for k, v in raw.items() if v is None]
    if empty:
        raise ConfigError(f"annotations without a value: {', '.join(empty)}")
    return {str(k): str(v) for k, v in raw.items()}


def parse_git_settings(config: dict) -> GitSettings:
    """Convert the ``git:`` section, falling back to $SVCGEN_GIT_PASSWORD."""
    raw = config.get("git") or {}
    if not isinstance(raw, dict):
        raise ConfigError("git must be a mapping")
    return GitSettings(
        commit=bool(raw.get("commit", False)),
        push=bool(raw.get("push", True)),
        remote=raw.get("remote") or DEFAULT_REMOTE,
        remote_url=raw.get("remoteUrl"),
        branch=raw.get("branch"),
        message=raw.get("message") or DEFAULT_COMMIT_MESSAGE,
        author_name=raw.get("authorName"),
        author_email=raw.get("authorEmail"),
        username=raw.get("username"),
        password=raw.get("password") or os.environ.get(PASSWORD_ENV_VAR),
        ssh_private_key=raw.get("sshPrivateKey"),
        ssh_public_key=raw.get("sshPublicKey"),
        strict_host_key_checking=bool(raw.get("strictHostKeyChecking", False)),
        trust_all_ssl_certificates=bool(raw.get("trustAllSslCertificates", False)),
    )
