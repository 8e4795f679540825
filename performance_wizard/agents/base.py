"""
AI Agent Base

Pluggable strategy wrapping one LLM provider. The base class owns the
invocation protocol: system instructions once per call, history replayed
as alternating user/assistant turns in step order, the current fragments
as the final user turn, and the optional follow-up questions instruction.
Provider subclasses only translate the neutral messages into their own
vocabulary.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
import logging
import os
import time

from ..models import AgentInvocation, ConversationHistory

logger = logging.getLogger(__name__)


PROVIDER_ENV_VARS: Dict[str, Sequence[str]] = {
    "gemini": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
    "debug": (),
}

TRANSIENT_ERROR_TERMS = (
    "timeout", "timed out", "rate limit", "429", "503", "502", "504",
    "connection", "temporary", "overloaded", "capacity",
)

FATAL_ERROR_TERMS = (
    "unauthorized", "401", "invalid api key", "authentication",
    "not found", "404", "invalid model", "permission denied",
)


def _safe_int(value, default: int = 0) -> int:
    """
    Safely convert a value to int, returning default if None or invalid.

    SDK usage objects sometimes carry ``None`` or omit fields.
    """
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class LLMConfig:
    """
    Configuration for an agent's provider client.

    Attributes
    ----------
    provider : str
        Provider key used for the API key lookup: "gemini", "openai",
        "anthropic" or "debug".
    model : str
        Model name. Empty selects the agent's default model.
    api_key : str, optional
        API key (falls back to the provider's environment variable)
    api_base : str, optional
        Custom API base URL (proxies, compatible gateways)
    max_tokens : int
        Maximum tokens in response
    temperature : float
        Sampling temperature
    timeout : float
        Request timeout in seconds. Agent calls are the long pole of a step.
    max_retries : int
        Retries for transient errors. The default of 0 means one attempt per
        step; the caller decides whether to re-issue the step.
    retry_delay : float
        Initial delay between retries in seconds
    retry_max_delay : float
        Maximum delay between retries in seconds
    """
    provider: str = "gemini"
    model: str = ""
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    max_tokens: int = 4096
    temperature: float = 0.7
    timeout: float = 180.0
    max_retries: int = 0
    retry_delay: float = 1.0
    retry_max_delay: float = 30.0

    def __post_init__(self):
        if self.api_key is None:
            for env_var in PROVIDER_ENV_VARS.get(self.provider.lower(), ()):
                value = os.environ.get(env_var)
                if value:
                    self.api_key = value
                    break


@dataclass
class Message:
    """
    A provider-neutral conversation turn.

    ``parts`` keeps the individual fragments of the current turn for
    providers that accept structured multi-part messages; ``content`` is the
    same turn joined into one string.
    """
    role: str  # "user" or "assistant"
    content: str
    parts: List[str] = field(default_factory=list)

    def fragments(self) -> List[str]:
        return list(self.parts) if self.parts else [self.content]


@dataclass
class LLMResponse:
    """Response from a provider API."""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    finish_reason: str = "stop"
    raw_response: Optional[Dict[str, Any]] = None


HistoryLike = Union[ConversationHistory, Mapping[int, Any], None]


class AIAgent(ABC):
    """
    Base class for AI agents.

    Parameters
    ----------
    config : LLMConfig, optional
        Provider configuration. Defaults to the agent's provider with keys
        from the environment.
    system_instructions : str
        Persona and task instructions sent once per call.
    """

    name: str = ""
    description: str = ""
    provider: str = ""
    default_model: str = ""

    def __init__(self, config: Optional[LLMConfig] = None, system_instructions: str = ""):
        if config is None:
            config = LLMConfig(provider=self.provider)
        if not config.model:
            config.model = self.default_model
        self.config = config
        self._system_instructions = system_instructions
        self.last_response: Optional[LLMResponse] = None

    def get_name(self) -> str:
        return self.name

    def get_description(self) -> str:
        return self.description

    def get_system_instructions(self) -> str:
        return self._system_instructions

    def set_system_instructions(self, system_instructions: str) -> None:
        self._system_instructions = system_instructions

    def build_messages(self, invocation: AgentInvocation) -> List[Message]:
        """
        Replay the history and append the current turn.

        Turn order is strictly increasing by step index, user before
        assistant within a step, then the outgoing fragments as the final
        user turn.
        """
        messages = [Message(role=role, content=text) for role, text in invocation.history.turns()]
        outgoing = invocation.outgoing_fragments()
        messages.append(Message(role="user", content="\n".join(outgoing), parts=outgoing))
        return messages

    def send_prompts(
        self,
        fragments: Sequence[str],
        current_step: int,
        history: HistoryLike,
        additional_questions: bool = False,
    ) -> str:
        """
        Send the fragments with the replayed history and return the reply.

        Never raises: provider failures are returned as the reply text so
        they become part of the conversation.

        Parameters
        ----------
        fragments : sequence of str
            Prompt fragments for the current step, not yet joined.
        current_step : int
            Step being executed; history is replayed for ``[1, current_step)``.
        history : ConversationHistory or mapping
            Prior step records.
        additional_questions : bool
            Append the follow-up questions instruction.

        Returns
        -------
        str
            The agent's reply, or the error text.
        """
        invocation = AgentInvocation(
            fragments=list(fragments),
            current_step=current_step,
            history=ConversationHistory.coerce(history, current_step),
            additional_questions=additional_questions,
        )
        messages = self.build_messages(invocation)
        logger.info(
            f"{self.get_name()}: sending step {current_step} with "
            f"{len(invocation.history)} prior steps ({len(messages)} messages)"
        )

        try:
            response = self._call_with_retries(messages)
        except Exception as e:
            logger.warning(f"{self.get_name()} call failed at step {current_step}: {e}")
            return f"Error from {self.get_name()}: {e}"

        self.last_response = response
        if not response.content:
            return f"No response from {self.get_name()}."
        return response.content

    def send_prompt(
        self,
        prompt: str,
        current_step: int,
        history: HistoryLike,
        additional_questions: bool = False,
    ) -> str:
        """Single-fragment form of :meth:`send_prompts`."""
        return self.send_prompts([prompt], current_step, history, additional_questions)

    def _call_with_retries(self, messages: List[Message]) -> LLMResponse:
        """Call the provider, retrying transient errors with exponential backoff."""
        delay = self.config.retry_delay

        for attempt in range(self.config.max_retries + 1):
            try:
                return self._call_api(messages, self.get_system_instructions())
            except Exception as e:
                error_str = str(e).lower()
                is_transient = any(term in error_str for term in TRANSIENT_ERROR_TERMS)
                is_fatal = any(term in error_str for term in FATAL_ERROR_TERMS)

                if is_fatal or not is_transient or attempt >= self.config.max_retries:
                    raise

                logger.info(f"{self.get_name()}: transient error, retrying in {delay:.1f}s: {e}")
                time.sleep(delay)
                delay = min(delay * 2, self.config.retry_max_delay)

        raise RuntimeError("Unexpected retry loop exit")

    @abstractmethod
    def _call_api(self, messages: List[Message], system_instructions: str) -> LLMResponse:
        """Send provider-neutral messages to the provider."""

    def _require_api_key(self, env_hint: str) -> str:
        if not self.config.api_key:
            raise ValueError(f"{self.get_name()} API key not provided. Set {env_hint} or pass api_key.")
        return self.config.api_key
