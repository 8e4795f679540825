"""
Tests for configuration loading and wizard assembly.
"""

import json

import pytest

from performance_wizard.agents import ChatGPTAgent, DebugAgent
from performance_wizard.config import WizardConfig, default_session_id
from performance_wizard.errors import ConfigurationError
from performance_wizard.runner import AnalysisRunner
from performance_wizard.store import InMemoryStateStore, JsonFileStateStore
from performance_wizard.wizard import build_wizard


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SITE_URL", "AGENT", "MODEL", "STATE_DIR", "SESSION_ID", "DEBUG"):
        monkeypatch.delenv(f"PERFORMANCE_WIZARD_{name}", raising=False)
    monkeypatch.delenv("PAGESPEED_API_KEY", raising=False)


class TestWizardConfig:
    """Tests for WizardConfig sources."""

    def test_defaults(self):
        config = WizardConfig(site_url="https://www.example.com/shop")

        assert config.agent == "gemini"
        assert config.session_id == "www.example.com_shop"
        assert config.max_retries == 0
        assert [s["type"] for s in config.data_sources] == ["lighthouse", "html", "script_attribution"]

    def test_default_session_id(self):
        assert default_session_id("") == "default"
        assert default_session_id("https://example.com:8080/") == "example.com_8080"
        assert default_session_id("https://example.com/siteA") != default_session_id("https://example.com/siteB")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PERFORMANCE_WIZARD_SITE_URL", "https://example.com")
        monkeypatch.setenv("PERFORMANCE_WIZARD_AGENT", "claude")
        monkeypatch.setenv("PERFORMANCE_WIZARD_DEBUG", "1")
        monkeypatch.setenv("PAGESPEED_API_KEY", "psi")

        config = WizardConfig.from_env(agent="chatgpt")

        assert config.site_url == "https://example.com"
        assert config.agent == "chatgpt"
        assert config.debug_mode is True
        assert config.pagespeed_api_key == "psi"

    def test_from_file(self, tmp_path):
        path = tmp_path / "wizard.json"
        path.write_text(json.dumps({
            "site_url": "https://example.com",
            "agent": "openai",
            "data_sources": [{"type": "static", "name": "Notes", "data": "x"}],
            "colour": "blue",
        }))

        config = WizardConfig.from_file(path, model="gpt-4o-mini")

        assert config.agent == "openai"
        assert config.model == "gpt-4o-mini"
        assert config.data_sources == [{"type": "static", "name": "Notes", "data": "x"}]

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
    def test_bad_file(self, tmp_path, content):
        path = tmp_path / "wizard.json"
        path.write_text(content)

        with pytest.raises(ConfigurationError):
            WizardConfig.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            WizardConfig.from_file(tmp_path / "nope.json")

    def test_to_llm_config(self):
        config = WizardConfig(agent="chatgpt", api_key="sk", timeout=60.0, max_retries=2)

        llm_config = config.to_llm_config()

        assert llm_config.provider == "openai"
        assert llm_config.api_key == "sk"
        assert llm_config.timeout == 60.0
        assert llm_config.max_retries == 2

    def test_unknown_agent(self):
        with pytest.raises(ConfigurationError):
            WizardConfig(agent="bard").to_llm_config()

    def test_to_dict_masks_secrets(self):
        assert WizardConfig(api_key="sk").to_dict()["api_key"] == "***"


class TestBuildWizard:
    """Tests for assembling the components."""

    def test_assembles_components(self, tmp_path):
        config = WizardConfig(site_url="https://example.com", agent="chatgpt", api_key="sk",
                              state_dir=str(tmp_path))

        wizard = build_wizard(config)

        assert isinstance(wizard.agent, ChatGPTAgent)
        assert wizard.agent.get_system_instructions()
        assert isinstance(wizard.store, JsonFileStateStore)
        assert wizard.plan.titles()[1:4] == ["Lighthouse", "HTML", "Script Attribution"]
        assert wizard.dispatcher.executor is wizard.executor
        assert "gemini" in wizard.supported_agents()

    def test_no_data_sources(self):
        with pytest.raises(ConfigurationError):
            build_wizard(WizardConfig(data_sources=[]), store=InMemoryStateStore())

    def test_debug_run_end_to_end(self):
        config = WizardConfig(site_url="https://example.com", agent="debug", debug_mode=True)
        wizard = build_wizard(config, store=InMemoryStateStore())

        result = AnalysisRunner(wizard.dispatcher, echo=lambda _: None).run()

        assert isinstance(wizard.agent, DebugAgent)
        assert result.complete
        assert sorted(wizard.history()) == [1, 2, 3, 4]
        assert all(r.response_text == "{debug}" for r in wizard.history().values())
