"""Tests for the mock and completion-backed strategies and strategy lookup."""

import pytest

from veritas.errors import StrategyUnavailableError
from veritas.io.uploads import UploadRegistry
from veritas.strategies import LLMStrategy, MockStrategy, StrategyRegistry

from conftest import FakeCompletion


# ============================================================================
# Strategy registry
# ============================================================================


def test_resolve_prefers_requested_names(store):
    registry = StrategyRegistry()
    mock = MockStrategy(store)
    registry.register("mock", mock)

    assert registry.resolve(["default", "simple-llm"]) is mock
    assert "mock" in registry and len(registry) == 1

    llm = LLMStrategy(store, FakeCompletion())
    registry.register("simple-llm", llm)
    assert registry.resolve(["simple-llm"]) is llm


def test_resolve_without_strategies_fails():
    with pytest.raises(StrategyUnavailableError):
        StrategyRegistry().resolve()


# ============================================================================
# Mock strategy
# ============================================================================


@pytest.mark.asyncio
async def test_mock_detects_sentences(store):
    strategy = MockStrategy(store)
    aspects = await strategy.detect_relevant_aspects_from_single_file(
        None, "Backups must be encrypted at rest. Ok. Reports are published monthly."
    )

    assert [(a["type"], a["content"]) for a in aspects] == [
        ("rule", "Backups must be encrypted at rest."),
        ("fact", "Reports are published monthly."),
    ]
    assert all(a["id"].startswith("mock-") for a in aspects)

    rules = await strategy.detect_rules_from_statement("Reports are published monthly.")
    assert [a["type"] for a in rules] == ["rule"]


@pytest.mark.asyncio
async def test_mock_support_and_challenge(seeded_store):
    strategy = MockStrategy(seeded_store)

    support = await strategy.get_evidences_for_statement("Backups run every 4 hours on production databases")
    assert [c["fact_id"] for c in support] == ["f-backup"]
    assert support[0]["decision"] == "support"
    assert await strategy.get_challenges_for_statement("Backups run every 4 hours on production databases") == []

    challenges = await strategy.get_challenges_for_statement("Production outages occurred in May")
    assert [c["fact_id"] for c in challenges] == ["f-outage"]


@pytest.mark.asyncio
async def test_store_relevant_aspects_merges_under_statement_key(store):
    strategy = MockStrategy(store)
    statement = "Vendors complete security training every year."

    stored = await strategy.store_relevant_aspects_from_single_file(None, statement)

    assert len(stored) == 1
    assert [a["content"] for a in store.get_aspects_by_resource(None, statement)] == [statement]


@pytest.mark.asyncio
async def test_mock_reads_local_files(store, workspace):
    document = workspace / "notes.md"
    document.write_text("Incident reviews happen within five days.\n")
    aspects = await MockStrategy(store, UploadRegistry(workspace)).detect_relevant_aspects_from_single_file(
        str(document)
    )
    assert [a["content"] for a in aspects] == ["Incident reviews happen within five days."]


# ============================================================================
# Completion-backed strategy
# ============================================================================


@pytest.mark.asyncio
async def test_llm_extracts_from_file(store, workspace):
    document = workspace / "policy.md"
    document.write_text("Keys rotate yearly. Backups run nightly.")
    completion = FakeCompletion(
        '```json\n{"facts": ["Backups run nightly"], "rules": [{"id": "r1", "content": "Keys rotate yearly"}]}\n```'
    )
    strategy = LLMStrategy(store, completion)

    aspects = await strategy.detect_relevant_aspects_from_single_file(str(document))

    assert [(a["type"], a["content"]) for a in aspects] == [
        ("fact", "Backups run nightly"),
        ("rule", "Keys rotate yearly"),
    ]
    call = completion.calls[0]
    assert call["task"]["intent"] == "extract-aspects"
    assert call["history"] == [{"role": "user", "content": "Keys rotate yearly. Backups run nightly."}]


@pytest.mark.asyncio
async def test_llm_skips_empty_input(store):
    completion = FakeCompletion()
    assert await LLMStrategy(store, completion).detect_rules_from_statement("   ") == []
    assert completion.calls == []


@pytest.mark.asyncio
async def test_llm_citations_drop_unknown_ids(seeded_store):
    completion = FakeCompletion(
        '```json\n{"citations": [{"id": "f-backup", "explanation": "Same schedule"}, {"id": "f-invented"}]}\n```'
    )
    strategy = LLMStrategy(seeded_store, completion)

    citations = await strategy.get_evidences_for_statement("Backups run every 4 hours")

    assert [c["fact_id"] for c in citations] == ["f-backup"]
    assert citations[0]["explanation"] == "Same schedule"
    assert citations[0]["decision"] == "support"
    assert completion.calls[0]["task"]["intent"] == "find-support"


@pytest.mark.asyncio
async def test_llm_challenge_intent(seeded_store):
    completion = FakeCompletion('```json\n{"citations": [{"id": "f-outage"}]}\n```')
    citations = await LLMStrategy(seeded_store, completion).get_challenges_for_statement("Outages occurred in May")

    assert citations[0]["decision"] == "challenge"
    assert completion.calls[0]["task"]["intent"] == "find-challenges"


@pytest.mark.asyncio
async def test_llm_empty_store_makes_no_call(store):
    completion = FakeCompletion()
    assert await LLMStrategy(store, completion).get_evidences_for_statement("Backups run nightly") == []
    assert completion.calls == []
