"""
AI agents.

Each agent wraps one LLM provider behind the same ``send_prompts``
contract, so the rest of the package never branches on the concrete
provider.
"""

from dataclasses import replace
from typing import Dict, Optional, Type

from ..errors import ConfigurationError
from .base import AIAgent, LLMConfig, LLMResponse, Message
from .chatgpt import ChatGPTAgent
from .claude import ClaudeAgent
from .debug import DEBUG_RESPONSE, DebugAgent
from .gemini import GeminiAgent


SUPPORTED_AGENTS: Dict[str, Type[AIAgent]] = {
    "gemini": GeminiAgent,
    "chatgpt": ChatGPTAgent,
    "claude": ClaudeAgent,
    "debug": DebugAgent,
}

AGENT_ALIASES = {
    "google": "gemini",
    "openai": "chatgpt",
    "anthropic": "claude",
}


def resolve_agent_name(name: str) -> str:
    """Normalize an agent name or alias to a key of ``SUPPORTED_AGENTS``."""
    key = (name or "").strip().lower()
    key = AGENT_ALIASES.get(key, key)
    if key not in SUPPORTED_AGENTS:
        raise ConfigurationError(
            f"Unknown agent '{name}'. Supported: {', '.join(SUPPORTED_AGENTS)}"
        )
    return key


def create_agent(
    name: str,
    config: Optional[LLMConfig] = None,
    system_instructions: str = "",
) -> AIAgent:
    """
    Create an agent by name.

    Parameters
    ----------
    name : str
        Agent name or alias (case-insensitive).
    config : LLMConfig, optional
        Provider configuration. When omitted, the agent's defaults apply.
    system_instructions : str
        Instructions sent once per call.

    Raises
    ------
    ConfigurationError
        If the name is not a supported agent.
    """
    agent_cls = SUPPORTED_AGENTS[resolve_agent_name(name)]
    if config is not None and config.provider != agent_cls.provider:
        # keys and model names of another provider are never reused
        config = replace(config, provider=agent_cls.provider, api_key=None, model="")
    return agent_cls(config=config, system_instructions=system_instructions)


__all__ = [
    "AIAgent",
    "AGENT_ALIASES",
    "ChatGPTAgent",
    "ClaudeAgent",
    "DEBUG_RESPONSE",
    "DebugAgent",
    "GeminiAgent",
    "LLMConfig",
    "LLMResponse",
    "Message",
    "SUPPORTED_AGENTS",
    "create_agent",
    "resolve_agent_name",
]
