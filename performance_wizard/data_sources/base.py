"""
Data Source Base

A data source produces one named block of diagnostic text (usually JSON)
plus the metadata telling the agent how to read it.
"""

import logging
from typing import Optional

import requests

from ..errors import UpstreamError

logger = logging.getLogger(__name__)


ERROR_MARKER_PREFIX = "[data unavailable: "


def error_marker(reason: str) -> str:
    """Build the string returned by ``get_data`` when collection failed."""
    return f"{ERROR_MARKER_PREFIX}{reason}]"


def is_error_marker(text: Optional[str]) -> bool:
    return bool(text) and text.startswith(ERROR_MARKER_PREFIX)


class DataSource:
    """
    Base class for data sources.

    Subclasses set the descriptive strings in ``__init__`` and implement
    :meth:`collect_data`. Consumers only call the ``get_*`` methods.

    Parameters
    ----------
    name : str
        Display name, also used as the step title.
    prompt : str
        Collection-in-progress message.
    description : str
        What the data is.
    user_prompt : str, optional
        Message shown to the user; falls back to ``prompt``.
    data_shape : str
        Structure of the returned payload.
    analysis_strategy : str
        How the agent should interpret the payload.
    """

    def __init__(
        self,
        name: str = "",
        prompt: str = "",
        description: str = "",
        user_prompt: Optional[str] = None,
        data_shape: str = "",
        analysis_strategy: str = "",
    ):
        self.name = name
        self.prompt = prompt
        self.description = description
        self.user_prompt = user_prompt
        self.data_shape = data_shape
        self.analysis_strategy = analysis_strategy

    def get_name(self) -> str:
        return self.name or ""

    def get_prompt(self) -> str:
        return self.prompt or ""

    def get_user_prompt(self) -> str:
        return self.user_prompt or self.get_prompt()

    def get_description(self) -> str:
        return self.description or ""

    def get_data_shape(self) -> str:
        return self.data_shape or ""

    def get_analysis_strategy(self) -> str:
        return self.analysis_strategy or ""

    def collect_data(self) -> str:
        """Fetch the payload. May raise; :meth:`get_data` handles failures."""
        raise NotImplementedError

    def get_data(self) -> str:
        """
        Return the payload, or an error marker when collection failed.

        Never raises for upstream failures.
        """
        try:
            data = self.collect_data()
        except (UpstreamError, requests.RequestException, OSError, ValueError) as e:
            logger.warning(f"Data source '{self.get_name()}' failed: {e}")
            return error_marker(str(e) or type(e).__name__)
        return data or ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.get_name()!r})"
