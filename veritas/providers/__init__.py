"""Completion providers."""

from veritas.providers.base import CompletionProvider
from veritas.providers.litellm_provider import LiteLLMCompletion

__all__ = ["CompletionProvider", "LiteLLMCompletion"]
