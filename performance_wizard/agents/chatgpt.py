"""
ChatGPT agent using the OpenAI SDK.

Role mapping: ``user`` / ``assistant``; system instructions are prepended
as the first ``system`` message.
"""

from typing import Dict, List

from .base import AIAgent, LLMResponse, Message, _safe_int


class ChatGPTAgent(AIAgent):
    """ChatGPT, the generative AI assistant developed by OpenAI."""

    name = "ChatGPT"
    description = "ChatGPT is a generative AI chatbot developed by OpenAI."
    provider = "openai"
    default_model = "gpt-4o"

    def build_api_messages(self, messages: List[Message], system_instructions: str) -> List[Dict[str, str]]:
        api_messages = []
        if system_instructions:
            api_messages.append({"role": "system", "content": system_instructions})
        api_messages.extend({"role": m.role, "content": m.content} for m in messages)
        return api_messages

    def _call_api(self, messages: List[Message], system_instructions: str) -> LLMResponse:
        try:
            import openai
        except ImportError:
            raise ImportError("openai package not installed. Run: pip install openai")

        api_key = self._require_api_key("OPENAI_API_KEY")
        client = openai.OpenAI(
            api_key=api_key,
            base_url=self.config.api_base,
            timeout=self.config.timeout,
            max_retries=0,
        )

        response = client.chat.completions.create(
            model=self.config.model,
            messages=self.build_api_messages(messages, system_instructions),
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )

        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage={
                "prompt_tokens": _safe_int(getattr(usage, "prompt_tokens", None)),
                "completion_tokens": _safe_int(getattr(usage, "completion_tokens", None)),
                "total_tokens": _safe_int(getattr(usage, "total_tokens", None)),
            },
            finish_reason=response.choices[0].finish_reason or "stop",
        )
