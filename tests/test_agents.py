"""
Tests for the AI agents.

Verifies:
- History replay and the final user turn
- Errors returned as text, never raised
- Transient errors retried
- Provider role mapping and system instruction channel (SDK clients mocked)
- Agent registry
"""

from unittest.mock import MagicMock, patch

import pytest

from performance_wizard.agents import (
    ChatGPTAgent,
    ClaudeAgent,
    DebugAgent,
    GeminiAgent,
    LLMConfig,
    create_agent,
    resolve_agent_name,
)
from performance_wizard.agents.base import LLMResponse
from performance_wizard.agents.gemini import _extract_gemini_text
from performance_wizard.errors import ConfigurationError
from performance_wizard.models import StepRecord
from performance_wizard.prompts import ADDITIONAL_QUESTIONS_PROMPT

from conftest import ScriptedAgent


HISTORY = {
    1: StepRecord(1, "lighthouse prompt", "lighthouse analysis"),
    2: StepRecord(2, "html prompt", "html analysis"),
}

SYSTEM = "You are a web performance expert."


class TestSendPrompts:
    """Tests for the shared invocation protocol."""

    def test_history_then_current_turn(self):
        agent = ScriptedAgent(system_instructions=SYSTEM)

        reply = agent.send_prompts(["one", "two"], 3, HISTORY)

        assert reply == "response 1"
        messages = agent.calls[0]
        assert [(m.role, m.content) for m in messages] == [
            ("user", "lighthouse prompt"),
            ("assistant", "lighthouse analysis"),
            ("user", "html prompt"),
            ("assistant", "html analysis"),
            ("user", "one\ntwo"),
        ]
        assert messages[-1].parts == ["one", "two"]
        assert agent.system_seen == [SYSTEM]

    def test_history_limited_to_earlier_steps(self):
        agent = ScriptedAgent()

        agent.send_prompts(["current"], 2, HISTORY)

        assert [m.content for m in agent.calls[0]] == ["lighthouse prompt", "lighthouse analysis", "current"]

    def test_raw_history_mapping_accepted(self):
        agent = ScriptedAgent()
        raw = {"1": {"prompt_text": "p1", "response_text": "r1"}}

        agent.send_prompts(["current"], 2, raw)

        assert [m.role for m in agent.calls[0]] == ["user", "assistant", "user"]

    def test_additional_questions_appended(self):
        agent = ScriptedAgent()

        agent.send_prompt("Summarize.", 3, {}, additional_questions=True)

        last = agent.calls[0][-1]
        assert last.parts == ["Summarize.", ADDITIONAL_QUESTIONS_PROMPT]
        assert last.content.endswith(ADDITIONAL_QUESTIONS_PROMPT)

    def test_errors_returned_as_text(self):
        agent = ScriptedAgent()

        with patch.object(agent, "_call_api", side_effect=RuntimeError("HTTP 500 from provider")):
            reply = agent.send_prompts(["hello"], 1, {})

        assert reply == "Error from Scripted: HTTP 500 from provider"

    def test_empty_reply_reported(self):
        agent = ScriptedAgent(responses=[""])

        assert agent.send_prompts(["hello"], 1, {}) == "No response from Scripted."

    def test_system_instructions_settable(self):
        agent = ScriptedAgent()
        agent.set_system_instructions("Be brief.")

        agent.send_prompts(["hello"], 1, {})

        assert agent.get_system_instructions() == "Be brief."
        assert agent.system_seen == ["Be brief."]


class TestRetries:
    """Tests for transient error retries."""

    def test_transient_error_retried(self):
        agent = ScriptedAgent()
        agent.config.max_retries = 2
        ok = LLMResponse(content="recovered", model="scripted")

        with patch.object(agent, "_call_api", side_effect=[RuntimeError("503 overloaded"), ok]) as call, \
                patch("performance_wizard.agents.base.time.sleep") as sleep:
            reply = agent.send_prompts(["hello"], 1, {})

        assert reply == "recovered"
        assert call.call_count == 2
        sleep.assert_called_once_with(agent.config.retry_delay)

    def test_fatal_error_not_retried(self):
        agent = ScriptedAgent()
        agent.config.max_retries = 3

        with patch.object(agent, "_call_api", side_effect=RuntimeError("401 Unauthorized")) as call, \
                patch("performance_wizard.agents.base.time.sleep"):
            reply = agent.send_prompts(["hello"], 1, {})

        assert call.call_count == 1
        assert "401 Unauthorized" in reply

    def test_single_attempt_by_default(self):
        agent = ScriptedAgent()

        with patch.object(agent, "_call_api", side_effect=RuntimeError("timeout")) as call:
            agent.send_prompts(["hello"], 1, {})

        assert call.call_count == 1


class TestChatGPTAgent:
    """Tests for the OpenAI-backed agent."""

    def test_system_message_first_and_roles(self):
        agent = ChatGPTAgent(LLMConfig(provider="openai", api_key="test-key"), system_instructions=SYSTEM)
        response = MagicMock()
        response.choices[0].message.content = "chatgpt analysis"
        response.choices[0].finish_reason = "stop"
        response.model = "gpt-4o"
        response.usage.prompt_tokens = 10
        response.usage.completion_tokens = 5
        response.usage.total_tokens = 15

        with patch("openai.OpenAI") as client_cls:
            client_cls.return_value.chat.completions.create.return_value = response
            reply = agent.send_prompts(["a", "b"], 3, HISTORY)

        assert reply == "chatgpt analysis"
        kwargs = client_cls.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"] == [
            {"role": "system", "content": SYSTEM},
            {"role": "user", "content": "lighthouse prompt"},
            {"role": "assistant", "content": "lighthouse analysis"},
            {"role": "user", "content": "html prompt"},
            {"role": "assistant", "content": "html analysis"},
            {"role": "user", "content": "a\nb"},
        ]
        assert client_cls.call_args.kwargs["timeout"] == 180.0
        assert agent.last_response.usage["total_tokens"] == 15

    def test_missing_api_key_becomes_text(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        agent = ChatGPTAgent()

        reply = agent.send_prompts(["hello"], 1, {})

        assert reply.startswith("Error from ChatGPT:")
        assert "OPENAI_API_KEY" in reply


class TestClaudeAgent:
    """Tests for the Anthropic-backed agent."""

    def test_system_parameter_and_roles(self):
        agent = ClaudeAgent(LLMConfig(provider="anthropic", api_key="test-key"), system_instructions=SYSTEM)
        block = MagicMock(type="text", text="claude analysis")
        response = MagicMock(content=[block], model="claude-sonnet-4-20250514", stop_reason="end_turn")
        response.usage.input_tokens = 7
        response.usage.output_tokens = 3

        with patch("anthropic.Anthropic") as client_cls:
            client_cls.return_value.messages.create.return_value = response
            reply = agent.send_prompts(["a", "b"], 2, HISTORY)

        assert reply == "claude analysis"
        kwargs = client_cls.return_value.messages.create.call_args.kwargs
        assert kwargs["system"] == SYSTEM
        assert kwargs["messages"] == [
            {"role": "user", "content": "lighthouse prompt"},
            {"role": "assistant", "content": "lighthouse analysis"},
            {"role": "user", "content": "a\nb"},
        ]
        assert agent.last_response.usage["total_tokens"] == 10


class TestGeminiAgent:
    """Tests for the Google GenAI-backed agent."""

    def test_model_role_and_multipart_turn(self):
        agent = GeminiAgent(LLMConfig(provider="gemini", api_key="test-key"), system_instructions=SYSTEM)
        response = MagicMock()
        response.text = "gemini analysis"
        response.candidates = []
        response.usage_metadata.prompt_token_count = 4
        response.usage_metadata.candidates_token_count = 2
        response.usage_metadata.total_token_count = 6

        with patch("google.genai.Client") as client_cls:
            client_cls.return_value.models.generate_content.return_value = response
            reply = agent.send_prompts(["a", "b", "c"], 2, HISTORY)

        assert reply == "gemini analysis"
        kwargs = client_cls.return_value.models.generate_content.call_args.kwargs
        contents = kwargs["contents"]
        assert [c.role for c in contents] == ["user", "model", "user"]
        assert [p.text for p in contents[-1].parts] == ["a", "b", "c"]
        assert SYSTEM in str(kwargs["config"].system_instruction)
        assert kwargs["model"] == "gemini-2.5-flash"

    def test_extract_text_from_candidate_parts(self):
        part = MagicMock(text="from parts")
        candidate = MagicMock(safety_ratings=[])
        candidate.finish_reason.name = "STOP"
        candidate.content.parts = [part]
        response = MagicMock(text=None, candidates=[candidate])

        text, finish_reason, info = _extract_gemini_text(response)

        assert text == "from parts"
        assert finish_reason == "stop"
        assert info["extraction_method"] == "candidates[0].content.parts"

    def test_blocked_prompt_detected(self):
        response = MagicMock(text=None, candidates=[])
        response.prompt_feedback.block_reason = "SAFETY"

        text, finish_reason, info = _extract_gemini_text(response)

        assert text == ""
        assert finish_reason == "blocked"
        assert info["safety_blocked"]


class TestDebugAgent:

    def test_returns_placeholder(self):
        agent = DebugAgent()

        assert agent.send_prompts(["hello"], 1, {}) == "{debug}"
        assert len(agent.calls) == 1


class TestAgentRegistry:
    """Tests for agent lookup."""

    @pytest.mark.parametrize("name, expected", [
        ("gemini", GeminiAgent),
        ("Gemini", GeminiAgent),
        ("google", GeminiAgent),
        ("chatgpt", ChatGPTAgent),
        ("openai", ChatGPTAgent),
        ("claude", ClaudeAgent),
        ("anthropic", ClaudeAgent),
        ("debug", DebugAgent),
    ])
    def test_create_by_name_or_alias(self, name, expected):
        assert isinstance(create_agent(name), expected)

    def test_unknown_agent(self):
        with pytest.raises(ConfigurationError):
            resolve_agent_name("bard")

    def test_default_models(self):
        assert create_agent("chatgpt").config.model == "gpt-4o"
        assert create_agent("claude").config.model == "claude-sonnet-4-20250514"

    def test_switching_provider_drops_foreign_key_and_model(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "anthropic-key")
        config = LLMConfig(provider="openai", api_key="openai-key", model="gpt-4o-mini")

        agent = create_agent("claude", config, system_instructions=SYSTEM)

        assert agent.config.api_key == "anthropic-key"
        assert agent.config.model == "claude-sonnet-4-20250514"
        assert agent.get_system_instructions() == SYSTEM
