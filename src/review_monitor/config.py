"""Configuration loader for the review monitor."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .parser_utils import LISTING_HOST

CONFIG_ENV_VAR = "REVIEW_MONITOR_CONFIG"
SNAPSHOTS_DIR_ENV_VAR = "REVIEW_MONITOR_SNAPSHOTS_DIR"

DEFAULT_TIER = 99


class AppInfo:
    """Static metadata for one tracked app."""

    def __init__(self, slug: str, data: Optional[Dict[str, Any]] = None) -> None:
        data = data or {}
        self.slug = slug
        self.enabled = data.get("enabled", True)
        self.reviews_url = data.get("reviews_url") or f"https://{LISTING_HOST}/{slug}/reviews"
        self.display_name = data.get("display_name") or slug
        self.tier = int(data.get("tier", DEFAULT_TIER))
        self.emoji = data.get("emoji", "")

    @property
    def label(self) -> str:
        """Emoji plus display name, as shown in the chat post."""
        if self.emoji:
            return f"{self.emoji} {self.display_name}"
        return self.display_name

    def __repr__(self) -> str:
        return f"AppInfo(slug={self.slug!r}, tier={self.tier})"


class AppCatalog:
    """Lookup of app metadata by slug, in configuration order."""

    def __init__(self, apps: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self._apps: Dict[str, AppInfo] = {
            slug: AppInfo(slug, data) for slug, data in (apps or {}).items()
        }

    def __contains__(self, slug: str) -> bool:
        return slug in self._apps

    def __len__(self) -> int:
        return len(self._apps)

    def lookup(self, slug: str) -> AppInfo:
        """Metadata for ``slug``; unknown apps get the slug as name and the last tier."""
        return self._apps.get(slug) or AppInfo(slug)

    def apps(self, *, enabled_only: bool = True) -> List[AppInfo]:
        return [app for app in self._apps.values() if app.enabled or not enabled_only]

    def reviews_urls(self) -> List[str]:
        return [app.reviews_url for app in self.apps()]

    def tiers(self) -> List[List[AppInfo]]:
        """Enabled apps grouped by tier, lowest tier first, config order inside a tier."""
        grouped: Dict[int, List[AppInfo]] = {}
        for app in self.apps():
            grouped.setdefault(app.tier, []).append(app)
        return [grouped[tier] for tier in sorted(grouped)]


class MonitorConfig:
    """Central configuration container for the review monitor."""

    DEFAULT_CONFIG_PATH = Path("config/apps.yaml")

    def __init__(self, config_path: Optional[Path | str] = None) -> None:
        path = Path(config_path or os.environ.get(CONFIG_ENV_VAR) or self.DEFAULT_CONFIG_PATH)
        if not path.is_absolute():
            path = Path.cwd() / path
        self.config_path = path
        self._data = self._load_config()
        self.catalog = AppCatalog(self._data.get("apps") or {})

    def _load_config(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            return {"apps": {}, "settings": {}}
        with open(self.config_path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {self.config_path} must contain a mapping")
        return data

    def get_setting(self, key: str, default: Any = None) -> Any:
        return (self._data.get("settings") or {}).get(key, default)

    @property
    def snapshots_dir(self) -> Path:
        return Path(os.environ.get(SNAPSHOTS_DIR_ENV_VAR) or self.get_setting("snapshots_dir", "snapshots"))

    @property
    def max_pages(self) -> int:
        return int(self.get_setting("max_pages", 20))

    @property
    def driver(self) -> str:
        return str(self.get_setting("driver", "playwright"))

    @property
    def headless(self) -> bool:
        return bool(self.get_setting("headless", True))

    @property
    def navigation_timeout_ms(self) -> int:
        return int(self.get_setting("navigation_timeout_ms", 30000))

    @property
    def page_wait_ms(self) -> int:
        return int(self.get_setting("page_wait_ms", 1500))

    @property
    def click_wait_ms(self) -> int:
        return int(self.get_setting("click_wait_ms", 500))
