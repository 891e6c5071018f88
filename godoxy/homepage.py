"""Homepage items grouped into categories."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

_CATEGORY_MEMBERS = {
    "Torrenting": "sonarr radarr bazarr lidarr readarr prowlarr watcharr "
    "qbittorrent qbit qbt transmission",
    "Media": "jellyfin jellyseerr emby plex navidrome immich tautulli nextcloud invidious",
    "Monitoring": "uptime uptime-kuma prometheus grafana netdata changedetection.io "
    "changedetection influxdb influx dozzle",
    "Networking": "adguardhome adgh adg pihole flaresolverr",
    "Home Automation": "homebridge home-assistant",
    "Container Management": "dockge portainer-ce portainer-be",
    "RSS": "rss rsshub rss-bridge miniflux freshrss",
    "Documents": "paperless paperless-ngx s-pdf",
    "Storage": "minio filebrowser rclone",
}

# category by alias or image name
PREDEFINED_CATEGORIES: Mapping[str, str] = MappingProxyType(
    {
        name: category
        for category, members in _CATEGORY_MEMBERS.items()
        for name in members.split()
    }
)


def predefined_category(name: str) -> Optional[str]:
    """Category known for an alias or image name, if any."""
    return PREDEFINED_CATEGORIES.get(name)


@dataclass
class Item:
    """One entry on the homepage."""

    show: bool = False
    name: str = ""
    icon: str = ""
    url: str = ""
    category: str = ""
    description: str = ""
    widget_config: Dict[str, Any] = field(default_factory=dict)
    source_type: str = ""
    alt_url: str = ""

    def is_empty(self) -> bool:
        """True when nothing but visibility and derived fields is set."""
        return not (
            self.name
            or self.icon
            or self.url
            or self.category
            or self.description
            or self.widget_config
        )


class HomepageConfig(Mapping[str, List[Item]]):
    """Items keyed by category, in insertion order."""

    def __init__(self) -> None:
        self._categories: Dict[str, List[Item]] = {}

    def add(self, item: Item) -> None:
        self._categories.setdefault(item.category, []).append(item)

    def clear(self) -> None:
        self._categories = {}

    def __getitem__(self, category: str) -> List[Item]:
        return self._categories[category]

    def __iter__(self) -> Iterator[str]:
        return iter(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {cat: [asdict(item) for item in items] for cat, items in self._categories.items()}