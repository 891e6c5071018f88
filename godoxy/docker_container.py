"""Container descriptions built from Docker API listings and inspections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping
from urllib.parse import urlsplit

from godoxy.docker_labels import (
    LABEL_ALIASES,
    LABEL_EXCLUDE,
    LABEL_IDLE_TIMEOUT,
    LABEL_STOP_METHOD,
    LABEL_STOP_SIGNAL,
    LABEL_STOP_TIMEOUT,
    LABEL_WAKE_TIMEOUT,
)
from godoxy.log import get_logger

_logger = get_logger("docker")

PortMapping = Dict[str, Dict[str, Any]]

_DATABASE_MOUNT_POINTS = frozenset(
    {
        "/var/lib/postgresql/data",
        "/var/lib/mysql",
        "/var/lib/mongodb",
        "/var/lib/mariadb",
        "/var/lib/memcached",
        "/var/lib/rabbitmq",
    }
)

_DATABASE_PRIVATE_PORTS = frozenset({5432, 3306, 6379, 11211, 27017})

_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})

_LOCALHOST = "127.0.0.1"


@dataclass
class Container:
    docker_host: str = ""
    container_name: str = ""
    container_id: str = ""
    image_name: str = ""
    labels: Dict[str, str] = field(default_factory=dict)
    public_port_mapping: PortMapping = field(default_factory=dict)
    private_port_mapping: PortMapping = field(default_factory=dict)
    public_ip: str = ""
    private_ip: str = ""
    network_mode: str = ""
    aliases: List[str] = field(default_factory=list)
    is_excluded: bool = False
    is_explicit: bool = False
    is_database: bool = False
    idle_timeout: str = ""
    wake_timeout: str = ""
    stop_method: str = ""
    stop_timeout: str = ""
    stop_signal: str = ""
    running: bool = False


DUMMY_CONTAINER = Container()


def image_name(image: str) -> str:
    """Image name without registry path or tag."""
    return image.split(":")[0].split("/")[-1]


def is_database(mounts: Iterable[Mapping[str, Any]], ports: Iterable[Mapping[str, Any]]) -> bool:
    """Guess whether a container runs a database from its mounts and ports."""
    if any(m.get("Destination") in _DATABASE_MOUNT_POINTS for m in mounts):
        return True
    return any(p.get("PrivatePort") in _DATABASE_PRIVATE_PORTS for p in ports)


def _comma_separated(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_port(value: str) -> int:
    if not value or not value.isascii() or not value.isdigit():
        return 0
    return min(int(value), 0xFFFF)


def _public_ip(docker_host: str, running: bool) -> str:
    if not running:
        return ""
    if docker_host.startswith("unix://"):
        return _LOCALHOST
    try:
        return urlsplit(docker_host).hostname or ""
    except ValueError as exc:
        _logger.error("invalid docker host %r, falling back to %s: %s", docker_host, _LOCALHOST, exc)
        return _LOCALHOST


def _private_ip(docker_host: str, network_settings: Any) -> str:
    if not docker_host.startswith("unix://") or not network_settings:
        return ""
    for network in (network_settings.get("Networks") or {}).values():
        address = (network or {}).get("IPAddress", "")
        if address:
            return address
    return ""


def from_docker(summary: Mapping[str, Any], docker_host: str) -> Container:
    """Build a container from a container list entry."""
    labels = dict(summary.get("Labels") or {})
    is_explicit = bool(labels.get(LABEL_ALIASES))
    name = summary["Names"][0].removeprefix("/")
    ports = list(summary.get("Ports") or [])

    aliases_label = labels.pop(LABEL_ALIASES, "")
    aliases = _comma_separated(aliases_label) if aliases_label else [name]
    running = summary.get("Status") == "running" or summary.get("State") == "running"

    return Container(
        docker_host=docker_host,
        container_name=name,
        container_id=summary.get("Id", ""),
        image_name=image_name(summary.get("Image", "")),
        labels=labels,
        public_port_mapping={
            str(p["PublicPort"]): dict(p) for p in ports if p.get("PublicPort")
        },
        private_port_mapping={str(p.get("PrivatePort", 0)): dict(p) for p in ports},
        public_ip=_public_ip(docker_host, running),
        private_ip=_private_ip(docker_host, summary.get("NetworkSettings")),
        network_mode=(summary.get("HostConfig") or {}).get("NetworkMode", ""),
        aliases=aliases,
        is_excluded=labels.pop(LABEL_EXCLUDE, "") in _TRUE_STRINGS,
        is_explicit=is_explicit,
        is_database=is_database(summary.get("Mounts") or [], ports),
        idle_timeout=labels.pop(LABEL_IDLE_TIMEOUT, ""),
        wake_timeout=labels.pop(LABEL_WAKE_TIMEOUT, ""),
        stop_method=labels.pop(LABEL_STOP_METHOD, ""),
        stop_timeout=labels.pop(LABEL_STOP_TIMEOUT, ""),
        stop_signal=labels.pop(LABEL_STOP_SIGNAL, ""),
        running=running,
    )


def from_json(inspect: Mapping[str, Any], docker_host: str) -> Container:
    """Build a container from a container inspection result."""
    network_settings = inspect.get("NetworkSettings") or {}
    ports: List[Dict[str, Any]] = []
    for key, bindings in (network_settings.get("Ports") or {}).items():
        port_str, _, proto = key.partition("/")
        proto = proto or "tcp"
        private = _parse_port(port_str)
        ports.append({"IP": "", "PrivatePort": private, "PublicPort": 0, "Type": proto})
        for binding in bindings or []:
            ports.append(
                {
                    "IP": binding.get("HostIp", ""),
                    "PrivatePort": private,
                    "PublicPort": _parse_port(binding.get("HostPort", "")),
                    "Type": proto,
                }
            )
    state = (inspect.get("State") or {}).get("Status", "")
    summary = {
        "Id": inspect.get("Id", ""),
        "Names": [inspect.get("Name", "").removeprefix("/")],
        "Image": inspect.get("Image", ""),
        "Ports": ports,
        "Labels": (inspect.get("Config") or {}).get("Labels"),
        "State": state,
        "Status": state,
        "Mounts": inspect.get("Mounts"),
        "NetworkSettings": {"Networks": network_settings.get("Networks")},
    }
    container = from_docker(summary, docker_host)
    container.network_mode = (inspect.get("HostConfig") or {}).get("NetworkMode", "")
    return container