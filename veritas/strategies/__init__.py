"""Strategies backing the knowledge skills."""

from veritas.strategies.base import Strategy
from veritas.strategies.llm import LLMStrategy
from veritas.strategies.mock import MockStrategy
from veritas.strategies.registry import DEFAULT_PREFERENCE, StrategyRegistry

__all__ = ["Strategy", "LLMStrategy", "MockStrategy", "StrategyRegistry", "DEFAULT_PREFERENCE"]
