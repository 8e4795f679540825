"""
Configuration

Settings for one analysis, read from keyword arguments, a JSON file or
the environment. Environment variables only fill values that were not
given explicitly.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse
import json
import logging
import os
import re

from .agents import resolve_agent_name, SUPPORTED_AGENTS
from .agents.base import LLMConfig
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


ENV_PREFIX = "PERFORMANCE_WIZARD_"

DEFAULT_DATA_SOURCES: List[Dict[str, Any]] = [
    {"type": "lighthouse"},
    {"type": "html"},
    {"type": "script_attribution"},
]


def _env(name: str) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    return value if value else None


def _env_flag(name: str) -> Optional[bool]:
    value = _env(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def default_session_id(site_url: str) -> str:
    """
    Derive a session id from the site's host and path.

    ``https://example.com/`` gives ``example.com`` and
    ``https://example.com/shop`` gives ``example.com_shop``.
    """
    parsed = urlparse(site_url)
    location = parsed.netloc + parsed.path if parsed.netloc else site_url
    return re.sub(r"[^A-Za-z0-9._-]+", "_", location).strip("._") or "default"


@dataclass
class WizardConfig:
    """
    Configuration for the Performance Wizard.

    Attributes
    ----------
    site_url : str
        Site under analysis (``PERFORMANCE_WIZARD_SITE_URL``).
    agent : str
        Agent name or alias (``PERFORMANCE_WIZARD_AGENT``).
    model : str
        Model override; empty uses the agent default (``PERFORMANCE_WIZARD_MODEL``).
    api_key : str, optional
        Provider key; falls back to the provider's environment variable.
    api_base : str, optional
        Custom provider base URL.
    state_dir : str
        Directory for session files (``PERFORMANCE_WIZARD_STATE_DIR``).
    session_id : str
        Session key; derived from the site host when empty.
    pagespeed_api_key : str, optional
        PageSpeed Insights key (``PAGESPEED_API_KEY``).
    timeout : float
        Agent request timeout in seconds.
    max_retries : int
        Transient-error retries per agent call.
    temperature : float
        Sampling temperature.
    max_tokens : int
        Maximum tokens per reply.
    additional_questions : bool
        Ask the agent for two follow-up questions on prompt steps.
    debug_mode : bool
        Skip network calls (``PERFORMANCE_WIZARD_DEBUG``).
    compare_source : str
        Data source re-run by the ``compare`` prompt.
    data_sources : list of dict
        Data source definitions, see ``build_data_source``.
    enabled_sources : list of str, optional
        Titles of the data source steps to run; all when None.
    """
    site_url: str = ""
    agent: str = "gemini"
    model: str = ""
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    state_dir: str = "~/.performance_wizard"
    session_id: str = ""
    pagespeed_api_key: Optional[str] = None
    timeout: float = 180.0
    max_retries: int = 0
    temperature: float = 0.7
    max_tokens: int = 4096
    additional_questions: bool = False
    debug_mode: bool = False
    compare_source: str = "Lighthouse"
    data_sources: List[Dict[str, Any]] = field(default_factory=lambda: [dict(s) for s in DEFAULT_DATA_SOURCES])
    enabled_sources: Optional[List[str]] = None

    def __post_init__(self):
        if self.pagespeed_api_key is None:
            self.pagespeed_api_key = os.environ.get("PAGESPEED_API_KEY") or None
        if not self.session_id:
            self.session_id = default_session_id(self.site_url)
        if not isinstance(self.data_sources, list):
            raise ConfigurationError("data_sources must be a list of mappings")

    @classmethod
    def from_env(cls, **overrides: Any) -> "WizardConfig":
        """
        Build a config from ``PERFORMANCE_WIZARD_*`` variables.

        Keyword arguments that are not None take precedence.
        """
        values: Dict[str, Any] = {}
        for name in ("site_url", "agent", "model", "state_dir", "session_id"):
            env_value = _env(name.upper())
            if env_value is not None:
                values[name] = env_value
        debug = _env_flag("DEBUG")
        if debug is not None:
            values["debug_mode"] = debug
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_file(cls, path: Union[str, Path], **overrides: Any) -> "WizardConfig":
        """
        Load a JSON config file, then fill gaps from the environment.

        Raises
        ------
        ConfigurationError
            If the file cannot be read or is not a JSON object.
        """
        path = Path(path).expanduser()
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Could not read config file {path}: {e}")
        if not isinstance(payload, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys in {path}: {', '.join(unknown)}")
        values = {k: v for k, v in payload.items() if k in known}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_env(**values)

    def agent_key(self) -> str:
        return resolve_agent_name(self.agent)

    def to_llm_config(self) -> LLMConfig:
        """Provider configuration for the selected agent."""
        provider = SUPPORTED_AGENTS[self.agent_key()].provider
        return LLMConfig(
            provider=provider,
            model=self.model,
            api_key=self.api_key,
            api_base=self.api_base,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Settings without secrets, for logging and display."""
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        for secret in ("api_key", "pagespeed_api_key"):
            if result.get(secret):
                result[secret] = "***"
        return result
