"""Named strategy lookup with a preference order."""

from collections.abc import Iterable

from veritas.errors import StrategyUnavailableError
from veritas.strategies.base import Strategy

DEFAULT_PREFERENCE = ("default", "simple-llm", "mock")


class StrategyRegistry:
    """Registry of strategies by name."""

    def __init__(self, preference: Iterable[str] = DEFAULT_PREFERENCE):
        self._strategies: dict[str, Strategy] = {}
        self.preference = tuple(preference)

    def register(self, name: str, strategy: Strategy) -> None:
        self._strategies[name] = strategy

    def get(self, name: str) -> Strategy | None:
        return self._strategies.get(name)

    def resolve(self, preferred: Iterable[str] = ()) -> Strategy:
        """
        First registered strategy among `preferred`, then the default preference.

        Raises:
            StrategyUnavailableError: If none of the names is registered.
        """
        for name in [*[p for p in preferred if p], *self.preference]:
            strategy = self._strategies.get(name)
            if strategy is not None:
                return strategy
        raise StrategyUnavailableError("No registered strategy is available for this skill.")

    @property
    def names(self) -> list[str]:
        return list(self._strategies.keys())

    def __len__(self) -> int:
        return len(self._strategies)

    def __contains__(self, name: str) -> bool:
        return name in self._strategies
