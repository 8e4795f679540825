"""
Gemini agent using the Google GenAI SDK.

Role mapping: ``user`` / ``model``. System instructions travel in the
dedicated ``system_instruction`` channel and the current turn is sent as
structured multi-part content, one part per fragment.
"""

from typing import Any, Dict, List, Tuple

from .base import AIAgent, LLMResponse, Message, _safe_int


def _extract_gemini_text(response) -> Tuple[str, str, Dict[str, Any]]:
    """
    Extract text content from a Gemini API response.

    The SDK can return text in different places depending on the model and
    on safety filtering, so several strategies are tried.

    Returns
    -------
    tuple
        (text_content, finish_reason, diagnostic_info)
    """
    text_content = ""
    finish_reason = "unknown"
    diagnostic_info = {
        "extraction_method": None,
        "candidates_count": 0,
        "safety_blocked": False,
        "block_reason": None,
    }

    # response.text raises ValueError when there is no valid candidate
    try:
        if getattr(response, "text", None):
            text_content = response.text
            diagnostic_info["extraction_method"] = "response.text"
    except (ValueError, AttributeError):
        pass

    candidates = getattr(response, "candidates", None) or []
    diagnostic_info["candidates_count"] = len(candidates)
    if candidates:
        candidate = candidates[0]
        candidate_finish = getattr(candidate, "finish_reason", None)
        if candidate_finish:
            finish_reason = getattr(candidate_finish, "name", str(candidate_finish)).lower()

        for rating in getattr(candidate, "safety_ratings", None) or []:
            if getattr(rating, "blocked", False):
                diagnostic_info["safety_blocked"] = True
                diagnostic_info["block_reason"] = str(getattr(rating, "category", "unknown"))
                break

        if not text_content:
            content = getattr(candidate, "content", None)
            parts = getattr(content, "parts", None) or []
            texts = [part.text for part in parts if getattr(part, "text", None)]
            if texts:
                text_content = "".join(texts)
                diagnostic_info["extraction_method"] = "candidates[0].content.parts"

    if not text_content:
        prompt_feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(prompt_feedback, "block_reason", None) if prompt_feedback else None
        if block_reason:
            diagnostic_info["safety_blocked"] = True
            diagnostic_info["block_reason"] = str(block_reason)
            finish_reason = "blocked"

    if text_content and finish_reason == "unknown":
        finish_reason = "stop"

    return text_content, finish_reason, diagnostic_info


class GeminiAgent(AIAgent):
    """Gemini, the generative AI assistant developed by Google."""

    name = "Gemini"
    description = "Gemini is a generative artificial intelligence chatbot developed by Google."
    provider = "gemini"
    default_model = "gemini-2.5-flash"

    ROLE_MAP = {"user": "user", "assistant": "model"}

    def build_contents(self, messages: List[Message], types) -> list:
        contents = []
        for m in messages:
            role = self.ROLE_MAP.get(m.role, "user")
            parts = [types.Part(text=text) for text in m.fragments()]
            contents.append(types.Content(role=role, parts=parts))
        return contents

    def _call_api(self, messages: List[Message], system_instructions: str) -> LLMResponse:
        try:
            from google import genai
            from google.genai import types
        except ImportError:
            raise ImportError("google-genai package not installed. Run: pip install google-genai")

        api_key = self._require_api_key("GOOGLE_API_KEY or GEMINI_API_KEY")
        http_kwargs: Dict[str, Any] = {"timeout": int(self.config.timeout * 1000)}  # milliseconds
        if self.config.api_base:
            http_kwargs["base_url"] = self.config.api_base
        client = genai.Client(api_key=api_key, http_options=types.HttpOptions(**http_kwargs))

        config_kwargs: Dict[str, Any] = {
            "temperature": self.config.temperature,
            "max_output_tokens": self.config.max_tokens,
        }
        if system_instructions:
            config_kwargs["system_instruction"] = system_instructions
        config = types.GenerateContentConfig(**config_kwargs)

        response = client.models.generate_content(
            model=self.config.model,
            contents=self.build_contents(messages, types),
            config=config,
        )

        text_content, finish_reason, diagnostic_info = _extract_gemini_text(response)
        if not text_content and diagnostic_info.get("safety_blocked"):
            raise ValueError(
                f"Gemini response blocked by safety filter: {diagnostic_info.get('block_reason')}"
            )

        usage_metadata = getattr(response, "usage_metadata", None)
        prompt_tokens = _safe_int(getattr(usage_metadata, "prompt_token_count", None))
        completion_tokens = _safe_int(getattr(usage_metadata, "candidates_token_count", None))
        total_tokens = _safe_int(getattr(usage_metadata, "total_token_count", None)) or (
            prompt_tokens + completion_tokens
        )

        return LLMResponse(
            content=text_content,
            model=self.config.model,
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": total_tokens,
            },
            finish_reason=finish_reason,
            raw_response={"diagnostic_info": diagnostic_info},
        )
