"""Shared fixtures for the Performance Wizard tests."""

from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from performance_wizard.agents.base import AIAgent, LLMConfig, LLMResponse, Message
from performance_wizard.data_sources.static import StaticDataSource
from performance_wizard.dispatcher import CommandDispatcher
from performance_wizard.executor import StepExecutor
from performance_wizard.plan import AnalysisPlan
from performance_wizard.store import InMemoryStateStore


SESSION_ID = "example.com"

LIGHTHOUSE_PAYLOAD = '{"mobile": {"lighthouseResult": {"audits": {}}}}'


class ScriptedAgent(AIAgent):
    """Agent answering "response N" for its N-th call and recording every call."""

    name = "Scripted"
    description = "Test agent"
    provider = "debug"

    def __init__(self, responses: Optional[List[str]] = None, **kwargs):
        super().__init__(config=LLMConfig(provider="debug", model="scripted"), **kwargs)
        self.responses = list(responses or [])
        self.calls: List[List[Message]] = []
        self.system_seen: List[str] = []

    def _call_api(self, messages, system_instructions):
        self.calls.append(list(messages))
        self.system_seen.append(system_instructions)
        if self.responses:
            content = self.responses.pop(0)
        else:
            content = f"response {len(self.calls)}"
        return LLMResponse(content=content, model="scripted")


def make_source(name: str = "Lighthouse", data: str = LIGHTHOUSE_PAYLOAD) -> StaticDataSource:
    return StaticDataSource(
        name,
        data=data,
        prompt=f"Gathering {name} data.",
        description=f"{name} description.",
        data_shape=f"{name} shape.",
        analysis_strategy=f"{name} strategy.",
    )


@pytest.fixture
def lighthouse_source() -> StaticDataSource:
    return make_source()


@pytest.fixture
def plan(lighthouse_source) -> AnalysisPlan:
    return AnalysisPlan([lighthouse_source])


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def mock_agent() -> MagicMock:
    agent = MagicMock(spec=AIAgent)
    agent.get_name.return_value = "Mock"
    agent.get_system_instructions.return_value = "You are a web performance expert."
    agent.send_prompts.return_value = "The site is slow."
    return agent


@pytest.fixture
def scripted_agent() -> ScriptedAgent:
    return ScriptedAgent(system_instructions="You are a web performance expert.")


@pytest.fixture
def executor(plan, mock_agent, store) -> StepExecutor:
    return StepExecutor(plan, mock_agent, store, SESSION_ID)


@pytest.fixture
def dispatcher(plan, executor, store) -> CommandDispatcher:
    return CommandDispatcher(plan, executor, store, SESSION_ID)
