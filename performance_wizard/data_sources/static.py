"""
Data sources for payloads collected ahead of time.
"""

from pathlib import Path

from ..errors import UpstreamError
from .base import DataSource


class StaticDataSource(DataSource):
    """A data source returning a fixed payload."""

    def __init__(self, name: str, data: str = "", **metadata):
        super().__init__(name=name, **metadata)
        self.data = data

    def collect_data(self) -> str:
        return self.data


class FileDataSource(DataSource):
    """
    A data source reading its payload from a file at collection time.

    Parameters
    ----------
    name : str
        Step title.
    path : str
        File holding the payload (text or JSON).
    encoding : str
        File encoding.
    """

    def __init__(self, name: str, path: str, encoding: str = "utf-8", **metadata):
        super().__init__(name=name, **metadata)
        self.path = Path(path)
        self.encoding = encoding

    def collect_data(self) -> str:
        if not self.path.exists():
            raise UpstreamError(f"File not found: {self.path}", source=self.get_name())
        return self.path.read_text(encoding=self.encoding)

