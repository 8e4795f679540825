"""
Offline agent for exercising the conversation without a provider.
"""

from typing import List

from .base import AIAgent, LLMResponse, Message

DEBUG_RESPONSE = "{debug}"


class DebugAgent(AIAgent):
    """Returns a fixed reply and records the messages it was given."""

    name = "Debug"
    description = "Debug agent that answers every prompt with a placeholder and makes no network calls."
    provider = "debug"
    default_model = "debug"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls: List[List[Message]] = []

    def _call_api(self, messages: List[Message], system_instructions: str) -> LLMResponse:
        self.calls.append(list(messages))
        return LLMResponse(content=DEBUG_RESPONSE, model=self.config.model)
