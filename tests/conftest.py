"""Shared fixtures for veritas tests."""

import pytest

from veritas.agent.context import SkillContext, User
from veritas.agent.registry import SkillRegistry
from veritas.io.uploads import UploadRegistry
from veritas.knowledge.store import KnowledgeStore
from veritas.providers.base import CompletionProvider
from veritas.strategies import MockStrategy, StrategyRegistry


class FakeCompletion(CompletionProvider):
    """Completion provider returning scripted replies and recording every call."""

    def __init__(self, *replies, default: str = ""):
        self.replies = list(replies)
        self.default = default
        self.calls: list[dict] = []

    async def complete(self, task, instruction, history=None, mode="precision"):
        self.calls.append({"task": dict(task), "instruction": instruction, "history": history, "mode": mode})
        if not self.replies:
            return self.default
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(task, instruction)
        return reply


@pytest.fixture
def workspace(tmp_path):
    """Create a temporary workspace."""
    (tmp_path / "workspace").mkdir()
    return tmp_path / "workspace"


@pytest.fixture
def store(workspace):
    return KnowledgeStore(workspace=workspace)


@pytest.fixture
def seeded_store(store):
    """Store with backup facts and an access review rule."""
    store.replace_resource("policies.md", [
        {"id": "f-backup", "type": "fact", "content": "Backups run every 4 hours on production databases"},
        {"id": "r-review", "type": "rule", "content": "Access reviews must happen every quarter"},
    ], {})
    store.replace_resource("incidents.md", [
        {"id": "f-outage", "type": "fact", "content": "Production outages did not occur in May"},
    ], {})
    return store


@pytest.fixture
def skill_registry():
    registry = SkillRegistry()
    registry.discover("veritas.skills")
    return registry


@pytest.fixture
def context(store, workspace, skill_registry):
    """SkillContext wired with the mock strategy and no completion provider."""
    uploads = UploadRegistry(workspace)
    strategies = StrategyRegistry()
    strategies.register(MockStrategy.name, MockStrategy(store, uploads))
    return SkillContext(
        store=store,
        strategies=strategies,
        uploads=uploads,
        registry=skill_registry,
        user=User("alice", ("sysAdmin",)),
        workspace=workspace,
    )
