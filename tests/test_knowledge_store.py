"""Tests for KnowledgeStore: normalization, keys, merge/replace semantics and persistence."""

import json

import pytest

from veritas.errors import KnowledgeStoreError
from veritas.knowledge.store import (
    KnowledgeStore,
    clamp_confidence,
    derive_resource_key,
    normalize_aspect,
    sanitize_tags,
)


# ============================================================================
# Normalization
# ============================================================================


def test_normalize_aspect_drops_blank_content():
    assert normalize_aspect("   ") is None
    assert normalize_aspect({"content": "  \n "}) is None
    assert normalize_aspect({"id": "x", "type": "fact"}) is None
    assert normalize_aspect(None) is None


def test_normalize_aspect_string_becomes_content():
    aspect = normalize_aspect("  Backups run nightly  ", resource_key="doc1", default_type="rule")

    assert aspect["content"] == "Backups run nightly"
    assert aspect["type"] == "rule"
    assert aspect["id"].startswith("auto-")
    assert aspect["metadata"] == {"resourceKey": "doc1"}


def test_normalize_aspect_fills_every_field():
    aspect = normalize_aspect({
        "id": " f1 ",
        "type": "RULE",
        "title": "  ",
        "content": "Keys rotate yearly",
        "reason": "Policy 7",
        "source": "",
        "tags": ["Security", "security", " ", "Keys"],
        "confidence": 0.123456,
        "createdAt": "2024-01-01T00:00:00Z",
        "metadata": {"resourceKey": "other"},
    }, resource_key="doc1")

    assert aspect == {
        "id": "f1",
        "type": "rule",
        "title": None,
        "content": "Keys rotate yearly",
        "rationale": "Policy 7",
        "source": None,
        "reference": None,
        "tags": ["security", "keys"],
        "confidence": 0.1235,
        "createdAt": "2024-01-01T00:00:00Z",
        "metadata": {"resourceKey": "other"},
    }


def test_unknown_type_falls_back_to_default():
    assert normalize_aspect({"content": "x y z", "type": "opinion"}, default_type="rule")["type"] == "rule"
    assert normalize_aspect({"content": "x y z", "type": "opinion"}, default_type="bogus")["type"] == "fact"


@pytest.mark.parametrize(
    "raw, expected",
    [(1.7, 1.0), (-0.2, 0.0), ("abc", None), (float("nan"), None), (True, None), (0.5, 0.5)],
)
def test_clamp_confidence(raw, expected):
    assert clamp_confidence(raw) == expected


def test_sanitize_tags_ignores_non_lists():
    assert sanitize_tags("security") == []
    assert sanitize_tags(["A", "a", 3]) == ["a", "3"]


# ============================================================================
# Resource keys
# ============================================================================


def test_resource_key_is_identifier_when_present():
    assert derive_resource_key("  Docs/Policy.md ") == "Docs/Policy.md"
    assert derive_resource_key("doc1", "ignored") == derive_resource_key("doc1", "other")


def test_resource_key_hashes_statement_without_identifier():
    first = derive_resource_key(None, "The sky is blue")
    second = derive_resource_key("   ", "The sky is blue")
    different = derive_resource_key(None, "The sky is green")

    assert first == second
    assert first.startswith("statement:")
    assert len(first) == len("statement:") + 24
    assert first != different


# ============================================================================
# Merge and replace
# ============================================================================


def test_merge_is_idempotent_by_id(store):
    store.merge_resource("doc1", [
        {"id": "a", "content": "Alpha statement", "title": "A"},
        {"id": "b", "content": "Beta statement"},
    ], {})
    merged = store.merge_resource("doc1", [{"id": "a", "content": "Alpha revised", "source": "v2"}], {})

    assert len(merged) == 2
    by_id = {aspect["id"]: aspect for aspect in store.get_aspects_by_resource("doc1")}
    assert set(by_id) == {"a", "b"}
    assert by_id["a"]["content"] == "Alpha revised"
    assert by_id["a"]["source"] == "v2"
    assert by_id["b"]["content"] == "Beta statement"


def test_replace_resource_end_to_end(store):
    store.replace_resource("doc1", [{"id": "f1", "type": "fact", "content": "Backups run every 4 hours"}], {})

    aspects = store.get_aspects_by_resource("doc1")
    assert len(aspects) == 1
    assert aspects[0]["id"] == "f1"
    assert aspects[0]["type"] == "fact"
    assert aspects[0]["source"] is None

    store.replace_resource("doc1", [{"id": "f2", "type": "rule", "content": "RPO <= 4h"}], {})

    assert [aspect["id"] for aspect in store.get_aspects_by_resource("doc1")] == ["f2"]


def test_statement_resources_collide_on_identical_text(store):
    context = {"statement": "Vendors completed training", "defaultType": "fact"}
    store.merge_resource(None, [{"id": "x", "content": "Vendors completed training in May"}], context)
    store.merge_resource(None, [{"id": "x", "content": "Vendors completed training in June"}], context)

    aspects = store.get_aspects_by_resource(None, "Vendors completed training")
    assert len(aspects) == 1
    assert aspects[0]["content"] == "Vendors completed training in June"
    assert aspects[0]["metadata"]["resourceKey"].startswith("statement:")


def test_content_less_aspects_are_dropped(store):
    stored = store.replace_resource("doc1", [{"id": "a", "content": ""}, "   ", {"content": "Kept one"}], {})
    assert [aspect["content"] for aspect in stored] == ["Kept one"]


def test_returned_aspects_are_copies(store):
    stored = store.replace_resource("doc1", [{"id": "a", "content": "Original text"}], {})
    stored[0]["content"] = "mutated"
    store.get_aspects_by_resource("doc1")[0]["tags"].append("mutated")

    aspect = store.get_aspects_by_resource("doc1")[0]
    assert aspect["content"] == "Original text"
    assert aspect["tags"] == []


# ============================================================================
# Queries
# ============================================================================


def test_list_all_aspects_carries_provenance(seeded_store):
    aspects = seeded_store.list_all_aspects()

    assert len(aspects) == 3
    backup = next(a for a in aspects if a["id"] == "f-backup")
    assert backup["resourceKey"] == "policies.md"
    assert backup["resource"] == "policies.md"
    assert backup["statement"] is None


def test_lookup_by_ids(seeded_store):
    assert seeded_store.get_aspect_by_id("r-review")["type"] == "rule"
    assert seeded_store.get_aspect_by_id("missing") is None
    assert seeded_store.get_aspect_by_id(None) is None

    found = seeded_store.get_aspects_by_ids(["f-outage", "missing", "f-backup"])
    assert [a["id"] for a in found] == ["f-outage", "f-backup"]
    assert seeded_store.get_aspects_by_ids([]) == []


def test_unknown_resource_is_empty(store):
    assert store.get_aspects_by_resource("nope") == []


def test_stats(seeded_store):
    assert seeded_store.stats() == {"resources": 2, "facts": 2, "rules": 1}


# ============================================================================
# Persistence
# ============================================================================


def test_document_layout_on_disk(store):
    store.replace_resource("doc1", [{"id": "f1", "content": "Backups run every 4 hours"}], {})

    data = json.loads(store.storage_path.read_text(encoding="utf-8"))
    assert data["version"] == 1
    record = data["resources"]["doc1"]
    assert record["resource"] == "doc1"
    assert record["statement"] is None
    assert record["savedAt"].endswith("Z")
    assert record["aspects"][0]["createdAt"]
    assert store.storage_path.name == "veritas-knowledge.json"
    assert store.storage_path.parent.name == ".veritas"


def test_second_instance_sees_writes(store):
    other = KnowledgeStore(store.storage_path)
    assert other.list_all_aspects() == []

    store.replace_resource("doc1", [{"id": "f1", "content": "Shared content"}], {})

    assert KnowledgeStore(store.storage_path).get_aspect_by_id("f1")["content"] == "Shared content"


def test_reads_reload_after_write(store):
    store.replace_resource("doc1", [{"id": "f1", "content": "First version"}], {})
    KnowledgeStore(store.storage_path).replace_resource("doc1", [{"id": "f1", "content": "Second version"}], {})
    store.replace_resource("doc2", [{"id": "f2", "content": "Other doc"}], {})

    assert store.get_aspect_by_id("f1")["content"] == "Second version"


def test_corrupt_store_raises(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(KnowledgeStoreError):
        KnowledgeStore(path).list_all_aspects()


def test_unwritable_store_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    store = KnowledgeStore(blocker / "store.json")

    with pytest.raises(KnowledgeStoreError):
        store.replace_resource("doc1", [{"content": "Will not persist"}], {})
