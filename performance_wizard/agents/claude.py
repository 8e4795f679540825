"""
Claude agent using the Anthropic SDK.

Role mapping: ``user`` / ``assistant``; system instructions go in the
dedicated ``system`` parameter.
"""

from typing import Any, Dict, List

from .base import AIAgent, LLMResponse, Message, _safe_int


class ClaudeAgent(AIAgent):
    """Claude, the generative AI assistant developed by Anthropic."""

    name = "Claude"
    description = "Claude is a generative AI chatbot developed by Anthropic."
    provider = "anthropic"
    default_model = "claude-sonnet-4-20250514"

    def build_request(self, messages: List[Message], system_instructions: str) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        if system_instructions:
            kwargs["system"] = system_instructions
        return kwargs

    def _call_api(self, messages: List[Message], system_instructions: str) -> LLMResponse:
        try:
            import anthropic
        except ImportError:
            raise ImportError("anthropic package not installed. Run: pip install anthropic")

        api_key = self._require_api_key("ANTHROPIC_API_KEY")
        client_kwargs: Dict[str, Any] = {"api_key": api_key, "timeout": self.config.timeout, "max_retries": 0}
        if self.config.api_base:
            client_kwargs["base_url"] = self.config.api_base
        client = anthropic.Anthropic(**client_kwargs)

        response = client.messages.create(**self.build_request(messages, system_instructions))

        text = "".join(
            getattr(block, "text", "") for block in response.content if getattr(block, "type", "text") == "text"
        )
        input_tokens = _safe_int(getattr(response.usage, "input_tokens", None))
        output_tokens = _safe_int(getattr(response.usage, "output_tokens", None))
        return LLMResponse(
            content=text,
            model=response.model,
            usage={
                "prompt_tokens": input_tokens,
                "completion_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
            finish_reason=response.stop_reason or "stop",
        )
