"""Services handed explicitly to every skill invocation."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

from veritas.io.uploads import UploadRegistry
from veritas.knowledge.store import KnowledgeStore
from veritas.providers.base import CompletionProvider
from veritas.strategies.base import Strategy
from veritas.strategies.registry import StrategyRegistry

if TYPE_CHECKING:
    from veritas.agent.audit import AuditLog
    from veritas.agent.registry import SkillRegistry


@dataclass(frozen=True)
class User:
    """An authenticated user and the roles they act under."""
    username: str
    roles: tuple[str, ...] = ()


@dataclass
class SkillContext:
    """Everything a skill action may use; no global state is consulted."""
    store: KnowledgeStore
    strategies: StrategyRegistry
    completion: CompletionProvider | None = None
    uploads: UploadRegistry = field(default_factory=UploadRegistry)
    registry: "SkillRegistry | None" = None
    audit: "AuditLog | None" = None
    user: User | None = None
    task: str = ""
    workspace: Path = field(default_factory=Path.cwd)

    def resolve_strategy(self, preferred: Iterable[str] = ()) -> Strategy:
        return self.strategies.resolve(preferred)

    def for_request(self, user: User | None, task: str) -> "SkillContext":
        """Copy bound to one user request."""
        return replace(self, user=user, task=task or "")
