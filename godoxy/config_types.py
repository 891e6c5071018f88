"""Typed model of the main configuration file."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Type


def _mapping(value: Any, key: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{key}: expected a mapping, got {type(value).__name__}")
    return value


def _value(data: Mapping[str, Any], key: str, kind: Type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise TypeError(f"{key}: expected {kind.__name__}, got {type(value).__name__}")
    return value


def _str_list(data: Mapping[str, Any], key: str) -> List[str]:
    items = _value(data, key, list, [])
    if not all(isinstance(item, str) for item in items):
        raise TypeError(f"{key}: expected a list of strings")
    return list(items)


def _str_map(data: Mapping[str, Any], key: str) -> Dict[str, str]:
    items = _mapping(data.get(key), key)
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in items.items()):
        raise TypeError(f"{key}: expected a mapping of strings")
    return dict(items)


@dataclass
class AutoCertConfig:
    email: str = ""
    domains: List[str] = field(default_factory=list)
    cert_path: str = ""
    key_path: str = ""
    provider: str = ""
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Providers:
    include: List[str] = field(default_factory=list)
    docker: Dict[str, str] = field(default_factory=dict)
    notification: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass
class HomepageSettings:
    use_default_categories: bool = True


def _autocert(data: Mapping[str, Any]) -> AutoCertConfig:
    return AutoCertConfig(
        email=_value(data, "email", str, ""),
        domains=_str_list(data, "domains"),
        cert_path=_value(data, "cert_path", str, ""),
        key_path=_value(data, "key_path", str, ""),
        provider=_value(data, "provider", str, ""),
        options=dict(_mapping(data.get("options"), "options")),
    )


def _providers(data: Mapping[str, Any]) -> Providers:
    notification = _mapping(data.get("notification"), "notification")
    return Providers(
        include=_str_list(data, "include"),
        docker=_str_map(data, "docker"),
        notification={
            name: dict(_mapping(cfg, name)) for name, cfg in notification.items()
        },
    )


@dataclass
class Config:
    providers: Providers = field(default_factory=Providers)
    autocert: AutoCertConfig = field(default_factory=AutoCertConfig)
    explicit_only: bool = False
    match_domains: List[str] = field(default_factory=list)
    homepage: HomepageSettings = field(default_factory=HomepageSettings)
    timeout_shutdown: int = 3
    redirect_to_https: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Config":
        """Build a config from parsed YAML, keeping defaults for missing keys."""
        data = _mapping(data, "config")
        defaults = cls()
        homepage = _mapping(data.get("homepage"), "homepage")
        return cls(
            providers=_providers(_mapping(data.get("providers"), "providers")),
            autocert=_autocert(_mapping(data.get("autocert"), "autocert")),
            explicit_only=_value(data, "explicit_only", bool, defaults.explicit_only),
            match_domains=_str_list(data, "match_domains"),
            homepage=HomepageSettings(
                use_default_categories=_value(
                    homepage,
                    "use_default_categories",
                    bool,
                    defaults.homepage.use_default_categories,
                )
            ),
            timeout_shutdown=_value(data, "timeout_shutdown", int, defaults.timeout_shutdown),
            redirect_to_https=_value(data, "redirect_to_https", bool, defaults.redirect_to_https),
        )


def default_config() -> Config:
    """A config with every default in place."""
    return Config()