"""
Performance Wizard

Composition root: turns a ``WizardConfig`` into data sources, a plan, an
agent, a state store, an executor and a dispatcher.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import logging

from .agents import create_agent, SUPPORTED_AGENTS
from .agents.base import AIAgent
from .config import WizardConfig
from .data_sources import build_data_source
from .data_sources.base import DataSource
from .dispatcher import CommandDispatcher
from .errors import ConfigurationError
from .executor import StepExecutor
from .models import StepRecord
from .plan import AnalysisPlan
from .prompts import SYSTEM_INSTRUCTIONS
from .store import JsonFileStateStore, StateStore

logger = logging.getLogger(__name__)


@dataclass
class PerformanceWizard:
    """The assembled components for one site."""
    config: WizardConfig
    plan: AnalysisPlan
    agent: AIAgent
    store: StateStore
    executor: StepExecutor
    dispatcher: CommandDispatcher

    @property
    def session_id(self) -> str:
        return self.config.session_id

    def history(self) -> Dict[int, StepRecord]:
        return self.store.load_records(self.session_id)

    def supported_agents(self) -> Dict[str, str]:
        """Agent key -> description."""
        return {key: cls.description for key, cls in SUPPORTED_AGENTS.items()}


def build_data_sources(config: WizardConfig) -> List[DataSource]:
    sources = [
        build_data_source(source_config, site_url=config.site_url, pagespeed_api_key=config.pagespeed_api_key)
        for source_config in config.data_sources
    ]
    if not sources:
        raise ConfigurationError("No data sources configured")
    return sources


def build_wizard(
    config: WizardConfig,
    store: Optional[StateStore] = None,
    agent: Optional[AIAgent] = None,
) -> PerformanceWizard:
    """
    Assemble a wizard from configuration.

    Parameters
    ----------
    config : WizardConfig
        Settings.
    store : StateStore, optional
        Defaults to a ``JsonFileStateStore`` under ``config.state_dir``.
    agent : AIAgent, optional
        Defaults to the agent named by ``config.agent``.

    Raises
    ------
    ConfigurationError
        If no data source resolves or the agent is unknown.
    """
    plan = AnalysisPlan(build_data_sources(config))

    if agent is None:
        agent = create_agent(config.agent, config.to_llm_config(), SYSTEM_INSTRUCTIONS)
    elif not agent.get_system_instructions():
        agent.set_system_instructions(SYSTEM_INSTRUCTIONS)

    if store is None:
        store = JsonFileStateStore(config.state_dir)

    executor = StepExecutor(plan, agent, store, config.session_id, debug_mode=config.debug_mode)

    def agent_factory(name: str) -> AIAgent:
        return create_agent(name, config.to_llm_config(), SYSTEM_INSTRUCTIONS)

    dispatcher = CommandDispatcher(
        plan,
        executor,
        store,
        config.session_id,
        compare_source=config.compare_source,
        agent_factory=agent_factory,
    )
    logger.info(
        f"Performance Wizard ready for '{config.session_id}' with agent {agent.get_name()} "
        f"and {plan.step_count()} steps"
    )
    return PerformanceWizard(config, plan, agent, store, executor, dispatcher)
