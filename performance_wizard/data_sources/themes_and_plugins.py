"""
Themes and plugins data source.

Works from a manifest of the active theme and plugins (exported from the
site) and enriches each plugin with its wordpress.org directory record.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from ..errors import UpstreamError
from .base import DataSource

logger = logging.getLogger(__name__)


PLUGIN_API_URL = "https://api.wordpress.org/plugins/info/1.0/{slug}.json"

PLUGIN_FIELDS = ("name", "slug", "version", "author", "description", "plugin_uri")
THEME_FIELDS = ("name", "version", "author", "description")


class ThemesAndPluginsDataSource(DataSource):
    """
    Describe the active theme and plugins.

    Parameters
    ----------
    theme : dict, optional
        Active theme metadata (name, version, author, description).
    plugins : list of dict, optional
        Active plugins. ``slug`` is used for the directory lookup and
        falls back to a slugified ``name``.
    manifest_path : str, optional
        JSON file with ``{"active_theme": {...}, "active_plugins": [...]}``;
        read at collection time when given.
    fetch_plugin_info : bool
        Query the wordpress.org Plugin API for each plugin.
    timeout : float
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        theme: Optional[Dict[str, Any]] = None,
        plugins: Optional[List[Dict[str, Any]]] = None,
        manifest_path: Optional[str] = None,
        fetch_plugin_info: bool = True,
        timeout: float = 30.0,
    ):
        super().__init__(
            name="Themes and Plugins",
            prompt="Collecting data about the themes and plugins used on the site...",
            description=(
                "The Themes and Plugins data source provides a list of the theme and plugins "
                "installed on the website, as well as meta data about those plugins."
            ),
            analysis_strategy=(
                "The Themes and Plugins data source can be analyzed by looking for common performance "
                "issues for the listed themes and plugins and combined with the HTML and Lighthouse "
                "data to make recommendations about the installed theme and plugins."
            ),
            data_shape=(
                "The returned data for each plugin includes a field named 'plugin_api_data' which "
                "contains the meta data about the plugin from the wordpress.org plugin API. This data "
                "includes a 'download_link' field which links to a zip archive of the complete plugin "
                "source code, and a 'versions' field with links to all versions of the plugin."
            ),
        )
        self.theme = dict(theme or {})
        self.plugins = [dict(p) for p in (plugins or [])]
        self.manifest_path = manifest_path
        self.fetch_plugin_info = fetch_plugin_info
        self.timeout = timeout

    @staticmethod
    def plugin_slug(plugin: Dict[str, Any]) -> str:
        slug = plugin.get("slug") or ""
        if not slug:
            slug = "-".join(str(plugin.get("name", "")).lower().split())
        return slug

    def _load_manifest(self) -> None:
        with open(Path(self.manifest_path), "r", encoding="utf-8") as f:
            manifest = json.load(f)
        if not isinstance(manifest, dict):
            raise UpstreamError(
                f"Manifest {self.manifest_path} must hold an object, got {type(manifest).__name__}",
                source=self.get_name(),
            )
        theme = manifest.get("active_theme") or {}
        plugins = manifest.get("active_plugins") or []
        if not isinstance(theme, dict):
            raise UpstreamError("Manifest 'active_theme' must be an object", source=self.get_name())
        if not isinstance(plugins, list) or not all(isinstance(p, dict) for p in plugins):
            raise UpstreamError("Manifest 'active_plugins' must be a list of objects", source=self.get_name())
        self.theme = dict(theme)
        self.plugins = [dict(p) for p in plugins]

    def get_plugin_info(self, slug: str) -> Optional[Dict[str, Any]]:
        """Look up a plugin in the wordpress.org directory. ``None`` when unavailable."""
        if not slug:
            return None
        try:
            response = requests.get(PLUGIN_API_URL.format(slug=slug), timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Plugin API lookup for '{slug}' failed: {e}")
            return None
        if response.status_code != 200:
            return None
        try:
            info = response.json()
        except ValueError:
            return None
        # The directory answers unknown slugs with {"error": "..."} or null.
        if not isinstance(info, dict) or "error" in info:
            return None
        info.pop("sections", None)
        return info

    def collect_data(self) -> str:
        if self.manifest_path:
            self._load_manifest()
        if not self.theme and not self.plugins:
            raise UpstreamError("No theme or plugin manifest available", source=self.get_name())

        plugins_data = []
        for plugin in self.plugins:
            entry = {key: plugin.get(key, "") for key in PLUGIN_FIELDS}
            entry["slug"] = self.plugin_slug(plugin)
            if self.fetch_plugin_info:
                info = self.get_plugin_info(entry["slug"])
                if info is not None:
                    entry["plugin_api_data"] = info
                else:
                    entry["plugin_api_error"] = "No plugin directory data found."
            plugins_data.append(entry)

        theme_data = {key: self.theme.get(key, "") for key in THEME_FIELDS}
        return json.dumps({"active_theme": theme_data, "active_plugins": plugins_data})
