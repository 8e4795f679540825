"""
Data sources consumed by the analysis plan.

Each source yields one named diagnostic payload plus the prompts that tell
the agent how to read it.
"""

from typing import Any, Dict, Mapping, Optional, Type

from ..errors import ConfigurationError
from .base import DataSource, error_marker, is_error_marker
from .html import HtmlDataSource
from .lighthouse import LighthouseDataSource, strip_binary_blobs
from .script_attribution import ScriptAttributionDataSource, attribute_script, extract_script_sources
from .static import FileDataSource, StaticDataSource
from .themes_and_plugins import ThemesAndPluginsDataSource


DATA_SOURCE_TYPES: Dict[str, Type[DataSource]] = {
    "lighthouse": LighthouseDataSource,
    "html": HtmlDataSource,
    "themes_and_plugins": ThemesAndPluginsDataSource,
    "script_attribution": ScriptAttributionDataSource,
    "file": FileDataSource,
    "static": StaticDataSource,
}

_METADATA_KEYS = ("prompt", "description", "user_prompt", "data_shape", "analysis_strategy")


def build_data_source(
    source_config: Mapping[str, Any],
    site_url: str = "",
    pagespeed_api_key: Optional[str] = None,
) -> DataSource:
    """
    Construct a data source from a config mapping.

    Parameters
    ----------
    source_config : mapping
        Must contain ``type``; remaining keys depend on the type.
    site_url : str
        Default site URL for network-backed sources.
    pagespeed_api_key : str, optional
        Key for the Lighthouse source.

    Raises
    ------
    ConfigurationError
        Unknown type or missing required fields.
    """
    source_type = str(source_config.get("type", "")).lower().replace("-", "_").replace(" ", "_")
    if source_type not in DATA_SOURCE_TYPES:
        raise ConfigurationError(
            f"Unknown data source type '{source_config.get('type')}'. "
            f"Supported: {', '.join(DATA_SOURCE_TYPES)}"
        )
    url = source_config.get("site_url") or site_url
    timeout = source_config.get("timeout")

    if source_type == "lighthouse":
        kwargs: Dict[str, Any] = {"api_key": source_config.get("api_key") or pagespeed_api_key}
        if source_config.get("strategies"):
            kwargs["strategies"] = tuple(source_config["strategies"])
        if timeout:
            kwargs["timeout"] = float(timeout)
        source: DataSource = LighthouseDataSource(url, **kwargs)
    elif source_type == "html":
        source = HtmlDataSource(url, pages=source_config.get("pages"), timeout=float(timeout or 30.0))
    elif source_type == "themes_and_plugins":
        source = ThemesAndPluginsDataSource(
            theme=source_config.get("theme"),
            plugins=source_config.get("plugins"),
            manifest_path=source_config.get("manifest"),
            fetch_plugin_info=bool(source_config.get("fetch_plugin_info", True)),
            timeout=float(timeout or 30.0),
        )
    elif source_type == "script_attribution":
        source = ScriptAttributionDataSource(
            url, plugin_names=source_config.get("plugin_names"), timeout=float(timeout or 30.0)
        )
    else:
        name = source_config.get("name")
        if not name:
            raise ConfigurationError(f"Data source of type '{source_type}' needs a name")
        metadata = {key: source_config[key] for key in _METADATA_KEYS if source_config.get(key) is not None}
        if source_type == "file":
            if not source_config.get("path"):
                raise ConfigurationError(f"File data source '{name}' needs a path")
            return FileDataSource(name, source_config["path"], **metadata)
        return StaticDataSource(name, source_config.get("data", ""), **metadata)

    # Built-in sources keep their wording unless the config overrides it.
    for key in _METADATA_KEYS:
        if source_config.get(key) is not None:
            setattr(source, key, source_config[key])
    if source_config.get("name"):
        source.name = source_config["name"]
    return source


__all__ = [
    "DataSource",
    "DATA_SOURCE_TYPES",
    "FileDataSource",
    "HtmlDataSource",
    "LighthouseDataSource",
    "ScriptAttributionDataSource",
    "StaticDataSource",
    "ThemesAndPluginsDataSource",
    "attribute_script",
    "build_data_source",
    "error_marker",
    "extract_script_sources",
    "is_error_marker",
    "strip_binary_blobs",
]
