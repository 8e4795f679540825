"""
Lighthouse data source backed by the PageSpeed Insights API.
"""

import json
import logging
import re
from typing import Dict, Optional, Sequence

import requests

from ..errors import UpstreamError
from .base import DataSource

logger = logging.getLogger(__name__)


PAGESPEED_API_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"

# Inline screenshots and thumbnails are megabytes of base64 with no analytic value.
_BINARY_BLOB_PATTERN = re.compile(r'data:image/[^"]*')
BINARY_PLACEHOLDER = "BINARY_DATA_REMOVED"


def strip_binary_blobs(text: str) -> str:
    return _BINARY_BLOB_PATTERN.sub(BINARY_PLACEHOLDER, text)


class LighthouseDataSource(DataSource):
    """
    Run Lighthouse through PageSpeed Insights for each strategy.

    Parameters
    ----------
    site_url : str
        Page to audit.
    api_key : str, optional
        PageSpeed Insights API key; anonymous requests are rate limited.
    strategies : sequence of str
        PageSpeed strategies, by default mobile and desktop.
    timeout : float
        Per-request timeout in seconds. Lighthouse runs can take minutes.
    """

    def __init__(
        self,
        site_url: str,
        api_key: Optional[str] = None,
        strategies: Sequence[str] = ("mobile", "desktop"),
        timeout: float = 180.0,
    ):
        super().__init__(
            name="Lighthouse",
            prompt="Gathering Lighthouse data for the site, this may take a moment.",
            description=(
                "Lighthouse is an open-source, automated tool for improving the quality of web "
                "pages, including performance data. This page describes how Lighthouse weighs its "
                "performance scores: "
                "https://developer.chrome.com/docs/lighthouse/performance/performance-scoring."
            ),
            analysis_strategy=(
                "The data returned against the website is the performance category described here: "
                "https://developers.google.com/speed/docs/insights/v5/reference/pagespeedapi/runpagespeed#response. "
                "The Lighthouse audits can indicate top opportunities for performance and provide an "
                "overall guide to making improvements. The site you are analyzing is a WordPress site, "
                "so look for common pitfalls and issues that affect WordPress sites. Assets served from "
                "WordPress plugins will include the plugin slug in their path (typically "
                "/wp-content/plugins/{slug}/path...), this information can be useful when evaluating "
                "WordPress plugins in a later step. Data will include mobile and desktop reports - "
                "compare these to note any differences that could be worth addressing. When sites have "
                "Real User Metrics available in the CrUX dataset, the API will return those as well - in "
                "this case compare the RUM metrics with the Lab metrics to discern anything noteworthy "
                "to highlight to the user."
            ),
            data_shape=(
                "The results are keyed by strategy (mobile, desktop). Each includes the "
                "`lighthouseResult` object which is a Lighthouse Results Object (LHR), documented here: "
                "https://github.com/GoogleChrome/lighthouse/blob/main/docs/understanding-results.md. "
                "The object structure for the audits is described here: "
                "https://github.com/GoogleChrome/lighthouse/blob/main/docs/understanding-results.md#audits."
            ),
        )
        self.site_url = site_url
        self.api_key = api_key
        self.strategies = tuple(strategies)
        self.timeout = timeout

    def _run_pagespeed(self, strategy: str) -> Dict:
        params = {"url": self.site_url, "category": "performance", "strategy": strategy}
        if self.api_key:
            params["key"] = self.api_key

        logger.info(f"Requesting PageSpeed Insights ({strategy}) for {self.site_url}")
        response = requests.get(PAGESPEED_API_URL, params=params, timeout=self.timeout)
        if response.status_code != 200:
            raise UpstreamError(
                f"PageSpeed Insights returned {response.status_code} for {strategy}",
                source=self.get_name(),
            )
        return json.loads(strip_binary_blobs(response.text))

    def collect_data(self) -> str:
        if not self.site_url:
            raise UpstreamError("No site URL configured", source=self.get_name())
        results = {strategy: self._run_pagespeed(strategy) for strategy in self.strategies}
        return json.dumps(results)
