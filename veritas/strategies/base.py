"""Strategy interface for aspect extraction and evidence lookup."""

from abc import ABC, abstractmethod
from typing import Any

from veritas.knowledge.store import KnowledgeStore

Aspect = dict[str, Any]
Citation = dict[str, Any]


class Strategy(ABC):
    """
    Business logic behind the knowledge skills.

    Implementations extract facts/rules from resources or statements and
    answer support/challenge queries against the knowledge store.
    """

    name: str = "base"

    def __init__(self, store: KnowledgeStore):
        self.store = store

    @abstractmethod
    async def detect_relevant_aspects_from_single_file(
        self, resource: str | None, statement: str = ""
    ) -> list[Aspect]:
        """Extract aspects from a resource (or the statement when there is none)."""
        pass

    async def store_relevant_aspects_from_single_file(
        self, resource: str | None, statement: str = ""
    ) -> list[Aspect]:
        """Extract aspects and merge them into the store under the resource."""
        aspects = await self.detect_relevant_aspects_from_single_file(resource, statement)
        if not aspects:
            return []
        self.store.merge_resource(resource, aspects, {"statement": statement, "defaultType": "fact"})
        return aspects

    @abstractmethod
    async def detect_rules_from_statement(self, statement: str) -> list[Aspect]:
        """Extract rules (defaulting the type to rule) from free text."""
        pass

    @abstractmethod
    async def get_evidences_for_statement(self, statement: str) -> list[Citation]:
        """Stored aspects that support the statement."""
        pass

    @abstractmethod
    async def get_challenges_for_statement(self, statement: str) -> list[Citation]:
        """Stored aspects that contradict the statement."""
        pass
