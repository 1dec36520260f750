"""Completion capability interface."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


class CompletionProvider(ABC):
    """
    Text in, markdown out.

    `task` carries an intent tag plus whatever context helps the backend
    (skill name, resource, statement). `history` entries are
    `{"role": ..., "content": ...}` messages. `mode` is "precision" or "fast".
    """

    @abstractmethod
    async def complete(
        self,
        task: Mapping[str, Any],
        instruction: str,
        history: list[dict[str, str]] | None = None,
        mode: str = "precision",
    ) -> str:
        """Return the backend's markdown answer."""
        pass
