"""Command line arguments, shared constants, port tables and key helpers."""

from __future__ import annotations

import argparse
import base64
import binascii
import hashlib
import json
import secrets
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Sequence

# commands, in the order they are accepted

VALID_COMMANDS = (
    "",
    "setup",
    "validate",
    "ls-config",
    "ls-routes",
    "ls-icons",
    "reload",
    "debug-ls-entries",
    "debug-ls-providers",
    "debug-ls-mtrace",
)

(
    COMMAND_START,
    COMMAND_SETUP,
    COMMAND_VALIDATE,
    COMMAND_LIST_CONFIGS,
    COMMAND_LIST_ROUTES,
    COMMAND_LIST_ICONS,
    COMMAND_RELOAD,
    COMMAND_DEBUG_LIST_ENTRIES,
    COMMAND_DEBUG_LIST_PROVIDERS,
    COMMAND_DEBUG_LIST_MTRACE,
) = VALID_COMMANDS

# timeouts, in seconds

CONNECTION_TIMEOUT, DIAL_TIMEOUT, KEEP_ALIVE = 5.0, 3.0, 60.0

# file and folder layout

DOT_ENV_PATH = ".env"
DOT_ENV_EXAMPLE_PATH = f"{DOT_ENV_PATH}.example"

CONFIG_BASE_PATH = "config"
CONFIG_FILE_NAME = "config.yml"
CONFIG_EXAMPLE_FILE_NAME = "config.example.yml"
CONFIG_PATH = f"{CONFIG_BASE_PATH}/{CONFIG_FILE_NAME}"
JWT_KEY_PATH = f"{CONFIG_BASE_PATH}/jwt.key"
MIDDLEWARE_COMPOSE_BASE_PATH = f"{CONFIG_BASE_PATH}/middlewares"

SCHEMA_BASE_PATH = "schema"
CONFIG_SCHEMA_PATH = f"{SCHEMA_BASE_PATH}/config.schema.json"
FILE_PROVIDER_SCHEMA_PATH = f"{SCHEMA_BASE_PATH}/providers.schema.json"

COMPOSE_FILE_NAME = "compose.yml"
COMPOSE_EXAMPLE_FILE_NAME = "compose.example.yml"

ERROR_PAGES_BASE_PATH = "error_pages"

REQUIRED_DIRECTORIES = (
    CONFIG_BASE_PATH,
    SCHEMA_BASE_PATH,
    ERROR_PAGES_BASE_PATH,
    MIDDLEWARE_COMPOSE_BASE_PATH,
)

DOCKER_HOST_FROM_ENV = "$DOCKER_HOST"

HEALTH_CHECK_INTERVAL_DEFAULT = HEALTH_CHECK_TIMEOUT_DEFAULT = 5.0

WAKE_TIMEOUT_DEFAULT, STOP_TIMEOUT_DEFAULT, STOP_METHOD_DEFAULT = "30s", "10s", "stop"

HEADER_CHECK_REDIRECT = "X-Goproxy-Check-Redirect"

# ports


def _by_name(groups: Mapping[int, Iterable[str]]) -> Dict[str, int]:
    return {name: port for port, names in groups.items() for name in names}


WELL_KNOWN_HTTP_PORTS = frozenset(str(p) for p in (80, 8000, 8008, 8080, 3000))

SERVICE_NAME_PORT_MAP_TCP: Mapping[str, int] = MappingProxyType(
    _by_name(
        {
            21: ["ftp"],
            22: ["ssh"],
            25: ["smtp"],
            53: ["dns"],
            110: ["pop3"],
            143: ["imap"],
            1433: ["mssql"],
            3306: ["mysql", "mariadb"],
            5432: ["postgres"],
            5672: ["rabbitmq"],
            6379: ["redis"],
            11211: ["memcached"],
            25565: ["minecraft-server"],
            27017: ["mongo"],
        }
    )
)

_IMAGE_PORTS = _by_name(
    {
        80: ["httpd", "nginx", "rss-bridge"],
        81: ["nginx-proxy-manager"],
        1200: ["rsshub"],
        3000: ["adguardhome", "changedetection.io", "gitea", "gogs", "grafana"],
        3001: ["immich", "uptime-kuma"],
        5001: ["dockge"],
        6767: ["bazarr"],
        6969: ["whisparr"],
        7878: ["radarr", "radarr-sma"],
        8080: ["microbin", "open-webui"],
        8083: ["calibre-web"],
        8096: ["jellyfin"],
        8123: ["home-assistant"],
        8581: ["homebridge"],
        8686: ["lidarr"],
        8989: ["sonarr", "sonarr-sma"],
        9090: ["prometheus"],
        9443: ["portainer-be", "portainer-ce"],
        9696: ["prowlarr"],
        32400: ["plex"],
    }
)

IMAGE_NAME_PORT_MAP: Mapping[str, int] = MappingProxyType(
    {**SERVICE_NAME_PORT_MAP_TCP, **_IMAGE_PORTS}
)


@dataclass(frozen=True)
class Args:
    """Parsed command line."""

    command: str = COMMAND_START


def validate_command(arg: str) -> str:
    """Return ``arg`` if it is a known command, otherwise raise ValueError."""
    if arg not in VALID_COMMANDS:
        raise ValueError(f"invalid command {json.dumps(arg)}")
    return arg


def get_args(argv: Optional[Sequence[str]] = None) -> Args:
    """Parse the command line; the first positional argument is the command."""
    parser = argparse.ArgumentParser(prog="godoxy")
    parser.add_argument("args", nargs="*", metavar="command")
    namespace = parser.parse_args(argv)
    command = namespace.args[0] if namespace.args else COMMAND_START
    try:
        validate_command(command)
    except ValueError as exc:
        raise SystemExit(f"invalid command: {exc}") from exc
    return Args(command=command)


def hash_password(pwd: str) -> bytes:
    """SHA-512 digest of a password."""
    return hashlib.sha512(pwd.encode()).digest()


def generate_jwt_key(size: int) -> str:
    """Random key of ``size`` bytes, base64 encoded."""
    return base64.b64encode(secrets.token_bytes(size)).decode("ascii")


def decode_jwt_key(key: str) -> Optional[bytes]:
    """Decode a base64 key; an empty key gives ``None``."""
    if not key:
        return None
    try:
        return base64.b64decode(key, validate=True)
    except binascii.Error as exc:
        raise ValueError("failed to decode jwt key") from exc