"""LiteLLM-backed completion provider."""

import json
from collections.abc import Mapping
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from veritas.errors import CompletionError
from veritas.providers.base import CompletionProvider

SYSTEM_PROMPT = (
    "You are VeritasAI, an assistant that validates, challenges and audits claims "
    "against a curated knowledge base of facts and rules. Answer in Markdown and "
    "never invent identifiers or sources."
)


class LiteLLMCompletion(CompletionProvider):
    """
    Completion provider using LiteLLM for multi-provider support.

    "fast" mode uses `fast_model` (when set) at temperature 0; "precision"
    mode uses the default model and configured temperature.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str | None = None,
        api_base: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        fast_model: str | None = None,
    ):
        self.model = model
        self.fast_model = fast_model or model
        self.api_key = api_key
        self.api_base = api_base
        self.max_tokens = max_tokens
        self.temperature = temperature

        litellm.suppress_debug_info = True
        litellm.drop_params = True

    def _build_messages(
        self,
        task: Mapping[str, Any],
        instruction: str,
        history: list[dict[str, str]] | None,
    ) -> list[dict[str, str]]:
        system = SYSTEM_PROMPT
        if task:
            system += f"\n\nTask context: {json.dumps(dict(task), default=str)}"
        messages = [{"role": "system", "content": system}]
        for entry in history or []:
            content = entry.get("content") or entry.get("message") or ""
            if content:
                messages.append({"role": entry.get("role", "user"), "content": content})
        messages.append({"role": "user", "content": instruction})
        return messages

    async def complete(
        self,
        task: Mapping[str, Any],
        instruction: str,
        history: list[dict[str, str]] | None = None,
        mode: str = "precision",
    ) -> str:
        fast = mode == "fast"
        kwargs: dict[str, Any] = {
            "model": self.fast_model if fast else self.model,
            "messages": self._build_messages(task, instruction, history),
            "max_tokens": self.max_tokens,
            "temperature": 0.0 if fast else self.temperature,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        intent = (task or {}).get("intent", "unknown")
        logger.debug(f"Completion request intent={intent} model={kwargs['model']}")
        try:
            response = await acompletion(**kwargs)
        except Exception as e:
            raise CompletionError(f"Completion failed for intent '{intent}': {e}") from e

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise CompletionError(f"Completion for intent '{intent}' returned no choices")
        content = choices[0].message.content
        return content or ""
