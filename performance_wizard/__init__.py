"""
Performance Wizard - AI-assisted website performance analysis

Drives a multi-step conversation with a pluggable LLM agent. Each step
feeds one diagnostic data source (Lighthouse, page HTML, themes and
plugins, script attribution) to the agent, then asks for a prioritized
summary. Step records are persisted per session so the conversation can
be replayed across independent request/response cycles.

Main Components:
    - plan: immutable step plan built from the data sources
    - executor: runs one step and persists its prompt/response record
    - dispatcher: command protocol (get_next_action, run_action, prompt, start)
    - store: session state stores (in-memory, JSON files)
    - agents: Gemini, ChatGPT, Claude and a debug agent
    - data_sources: diagnostic data collectors
    - runner: client loop running a full analysis

Example:
    >>> from performance_wizard import WizardConfig, build_wizard, AnalysisRunner
    >>>
    >>> config = WizardConfig(site_url="https://example.com", agent="gemini")
    >>> wizard = build_wizard(config)
    >>> result = AnalysisRunner(wizard.dispatcher).run()
    >>>
    >>> # Or one protocol command at a time
    >>> wizard.dispatcher.handle_command({"command": "get_next_action", "step": 1})
"""

from .agents import AIAgent, LLMConfig, create_agent, SUPPORTED_AGENTS
from .config import WizardConfig
from .data_sources import DataSource, build_data_source
from .dispatcher import CommandDispatcher
from .errors import (
    WizardError,
    ConfigurationError,
    UnknownStepError,
    OutOfRangeError,
    SessionCompleteError,
    UnknownCommandError,
    UpstreamError,
)
from .executor import StepExecutor, USER_PREFIX, AGENT_PREFIX
from .models import (
    Step,
    StepAction,
    StepRecord,
    ConversationHistory,
    AgentInvocation,
    OperationReport,
    CommandResponse,
)
from .plan import AnalysisPlan
from .runner import AnalysisRunner, AnalysisResult
from .store import StateStore, InMemoryStateStore, JsonFileStateStore
from .wizard import PerformanceWizard, build_wizard

__version__ = "0.1.0"

__all__ = [
    "AIAgent",
    "LLMConfig",
    "create_agent",
    "SUPPORTED_AGENTS",
    "WizardConfig",
    "DataSource",
    "build_data_source",
    "CommandDispatcher",
    "WizardError",
    "ConfigurationError",
    "UnknownStepError",
    "OutOfRangeError",
    "SessionCompleteError",
    "UnknownCommandError",
    "UpstreamError",
    "StepExecutor",
    "USER_PREFIX",
    "AGENT_PREFIX",
    "Step",
    "StepAction",
    "StepRecord",
    "ConversationHistory",
    "AgentInvocation",
    "OperationReport",
    "CommandResponse",
    "AnalysisPlan",
    "AnalysisRunner",
    "AnalysisResult",
    "StateStore",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "PerformanceWizard",
    "build_wizard",
]
