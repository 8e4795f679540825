"""
Script attribution data source.

Lists the scripts on the home page and attributes each one to the plugin
or theme that ships it, based on its path.
"""

import json
import logging
import re
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlparse

import requests

from ..errors import UpstreamError
from .base import DataSource

logger = logging.getLogger(__name__)


_SCRIPT_SRC_PATTERN = re.compile(
    r"<script\b[^>]*?\bsrc\s*=\s*([\"'])(?P<src>[^\"']+)\1",
    re.IGNORECASE,
)
_SLUG_PATTERN = re.compile(r"/wp-content/(?P<kind>plugins|themes)/(?P<slug>[^/]+)/")


def extract_script_sources(html: str, base_url: str = "") -> List[str]:
    """Return the absolute ``src`` of every external script, in document order."""
    sources = []
    for match in _SCRIPT_SRC_PATTERN.finditer(html or ""):
        src = match.group("src").strip()
        if base_url:
            src = urljoin(base_url, src)
        if src not in sources:
            sources.append(src)
    return sources


def attribute_script(src: str, site_host: str, plugin_names: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Attribute one script URL.

    Scripts under ``/wp-includes/`` belong to core, scripts under
    ``/wp-content/plugins/<slug>/`` or ``/wp-content/themes/<slug>/`` to
    that plugin or theme, scripts on other hosts are third party.
    """
    plugin_names = plugin_names or {}
    parsed = urlparse(src)
    host = parsed.netloc.lower()
    path = parsed.path

    if host and site_host and host != site_host:
        return {"path": src, "slug": "third-party", "name": host, "kind": "third-party"}

    if path.startswith("/wp-includes/") or path.startswith("/wp-admin/"):
        return {"path": path, "slug": "core", "name": "Core", "kind": "core"}

    match = _SLUG_PATTERN.search(path)
    if match:
        slug = match.group("slug")
        kind = "plugin" if match.group("kind") == "plugins" else "theme"
        return {"path": path, "slug": slug, "name": plugin_names.get(slug, slug), "kind": kind}

    return {"path": path, "slug": "", "name": "", "kind": "unknown"}


class ScriptAttributionDataSource(DataSource):
    """
    Attribute front-end scripts to plugins and themes.

    Parameters
    ----------
    site_url : str
        Page whose scripts are listed.
    plugin_names : dict, optional
        ``{slug: display name}`` for nicer attribution.
    timeout : float
        Request timeout in seconds.
    """

    def __init__(self, site_url: str, plugin_names: Optional[Dict[str, str]] = None, timeout: float = 30.0):
        super().__init__(
            name="Script Attribution",
            prompt="Collecting data about the scripts on the site...",
            description=(
                "The Script Attribution data source provides a list of scripts on the page. For each "
                "script it provides the path (or URL), as well as the slug and name of the plugin that "
                "enqueued the script."
            ),
            analysis_strategy=(
                "The Script Attribution data source can be combined with the Lighthouse data to include "
                "the plugin name when making recommendations. When a Lighthouse audit identifies a script "
                "as a performance issue, the script attribution data can be used to identify the specific "
                "plugin that is causing the issue."
            ),
            data_shape=(
                "The returned data is a JSON object with a list of scripts. Each script object includes "
                "the path (or URL) of the script, the slug and name of the plugin that enqueued the "
                "script, and its kind (core, plugin, theme, third-party or unknown)."
            ),
        )
        self.site_url = site_url
        self.plugin_names = dict(plugin_names or {})
        self.timeout = timeout

    def collect_data(self) -> str:
        if not self.site_url:
            raise UpstreamError("No site URL configured", source=self.get_name())

        response = requests.get(self.site_url, timeout=self.timeout)
        if response.status_code != 200:
            raise UpstreamError(
                f"Fetching {self.site_url} returned {response.status_code}",
                source=self.get_name(),
            )

        site_host = urlparse(self.site_url).netloc.lower()
        scripts = [
            attribute_script(src, site_host, self.plugin_names)
            for src in extract_script_sources(response.text, self.site_url)
        ]
        logger.debug(f"Attributed {len(scripts)} scripts on {self.site_url}")
        return json.dumps({"scripts": scripts})
