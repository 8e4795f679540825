"""
HTML data source: front-end markup as seen by an anonymous visitor.
"""

import json
import logging
from typing import Dict, Optional

import requests

from ..errors import UpstreamError
from .base import DataSource

logger = logging.getLogger(__name__)


class HtmlDataSource(DataSource):
    """
    Fetch the HTML of the home page and any extra named pages.

    Parameters
    ----------
    site_url : str
        Home page URL.
    pages : dict, optional
        Extra ``{page_name: url}`` entries, e.g. ``most_recent_post`` or
        ``archive_page``.
    timeout : float
        Per-request timeout in seconds.
    """

    def __init__(self, site_url: str, pages: Optional[Dict[str, str]] = None, timeout: float = 30.0):
        super().__init__(
            name="HTML",
            prompt=(
                "Collecting HTML source for the site, attempting to grab the home page "
                "and any other configured pages."
            ),
            description=(
                "The HTML data source provides the HTML of the website as retrieved from the "
                "front end by an unauthenticated user."
            ),
            analysis_strategy=(
                "The data returned is JSON encoded and maps page names (such as \"home_page\") to "
                "the HTML of the respective page. The HTML data can be analyzed by looking for common "
                "performance issues in the HTML. Particular attention can be paid to issues identified "
                "in the Lighthouse audit at the beginning of the analysis. Files loaded from a "
                "WordPress plugin or theme can typically be identified by their path: "
                "/wp-content/plugins/<plugin-slug> or /wp-content/themes/<theme-slug>. This analysis "
                "is for the website so scripts from other domains (so called \"third party scripts\") "
                "should be reviewed individually for their potential performance impact. Also, consider "
                "the Lighthouse report script details from the previous step when considering which "
                "scripts are having the most impact."
            ),
        )
        self.site_url = site_url
        self.pages = dict(pages or {})
        self.timeout = timeout

    def page_urls(self) -> Dict[str, str]:
        urls = {"home_page": self.site_url}
        urls.update(self.pages)
        return urls

    def collect_data(self) -> str:
        if not self.site_url:
            raise UpstreamError("No site URL configured", source=self.get_name())

        results = {}
        for page_name, url in self.page_urls().items():
            logger.debug(f"Fetching {page_name}: {url}")
            # One unreachable page should not hide the others.
            try:
                response = requests.get(url, timeout=self.timeout)
            except requests.RequestException as e:
                logger.warning(f"Fetching {url} failed: {e}")
                results[page_name] = ""
                continue
            if response.status_code != 200:
                logger.warning(f"Fetching {url} returned {response.status_code}")
                results[page_name] = ""
                continue
            results[page_name] = response.text
        return json.dumps(results)
