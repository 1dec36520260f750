"""Tests for the built-in skills running on the mock strategy."""

from dataclasses import replace

import pytest

from veritas.errors import ArgumentValidationError, CompletionError

from conftest import FakeCompletion

BACKUP_CLAIM = "Backups run every 4 hours on production databases"


async def run(registry, name, args, ctx):
    return await registry.require(name).action(args, ctx)


# ============================================================================
# Statement skills
# ============================================================================


@pytest.mark.asyncio
async def test_validate_statement(seeded_store, skill_registry, context):
    result = await run(skill_registry, "validate-statement", {"statement": BACKUP_CLAIM}, context)

    assert result.success
    assert result.result["verdict"] == "supported"
    assert [c["fact_id"] for c in result.result["citations"]] == ["f-backup"]
    report = result.result["report"]
    assert report.startswith("# Validation Brief")
    assert "**f-backup**" in report


@pytest.mark.asyncio
async def test_validate_statement_without_evidence(store, skill_registry, context):
    result = await run(skill_registry, "validate-statement", {"statement": BACKUP_CLAIM}, context)
    assert result.result["verdict"] == "unverified"
    assert "No supporting evidence" in result.result["report"]


@pytest.mark.asyncio
async def test_challenge_statement(seeded_store, skill_registry, context):
    result = await run(
        skill_registry, "challenge-statement", {"statement": "Production outages occurred in May"}, context
    )
    assert [c["fact_id"] for c in result.result["citations"]] == ["f-outage"]
    assert "## Risk Assessment\nmedium" in result.result["report"]


@pytest.mark.asyncio
async def test_audit_statement_verdicts(seeded_store, skill_registry, context):
    supported = await run(skill_registry, "audit-statement", {"statement": BACKUP_CLAIM}, context)
    assert supported.result["verdict"] == "supported"

    contradicted = await run(
        skill_registry, "audit-statement", {"statement": "Production outages occurred in May"}, context
    )
    assert contradicted.result["verdict"] == "contradicted"
    assert contradicted.result["report"].startswith("# Statement Audit")


@pytest.mark.asyncio
async def test_report_comes_from_completion_when_available(seeded_store, skill_registry, context):
    completion = FakeCompletion("# Written Brief\n\nAll good.")
    result = await run(
        skill_registry, "validate-statement", {"statement": BACKUP_CLAIM}, replace(context, completion=completion)
    )

    assert result.result["report"] == "# Written Brief\n\nAll good."
    call = completion.calls[0]
    assert call["mode"] == "precision"
    assert call["task"]["skill"] == "validate-statement"
    assert "f-backup" in call["history"][0]["content"]


@pytest.mark.asyncio
async def test_report_falls_back_when_completion_fails(seeded_store, skill_registry, context):
    completion = FakeCompletion(CompletionError("timeout"))
    result = await run(
        skill_registry, "validate-statement", {"statement": BACKUP_CLAIM}, replace(context, completion=completion)
    )
    assert result.result["report"].startswith("# Validation Brief")


# ============================================================================
# Document skills
# ============================================================================

DOCUMENT = f"{BACKUP_CLAIM}. Production outages occurred in May last year."


@pytest.mark.asyncio
async def test_audit_document_mixed(seeded_store, skill_registry, context):
    result = await run(skill_registry, "audit-document", {"document": DOCUMENT}, context)

    payload = result.result
    assert payload["verdict"] == "mixed"
    assert payload["resource"] is None
    assert len(payload["findings"]) == 2
    assert [c["fact_id"] for c in payload["findings"][0]["supporting"]] == ["f-backup"]
    assert [c["fact_id"] for c in payload["findings"][1]["challenging"]] == ["f-outage"]
    assert payload["report"].startswith("# Document Audit Report")
    assert "## Overall Verdict\nmixed" in payload["report"]


@pytest.mark.asyncio
async def test_document_highlights_limit_findings(seeded_store, skill_registry, context):
    result = await run(skill_registry, "validate-document", {"document": DOCUMENT, "highlights": 1}, context)
    assert len(result.result["findings"]) == 1
    assert result.result["findings"][0]["challenging"] == []


@pytest.mark.asyncio
async def test_challenge_document_reads_files(seeded_store, skill_registry, context, workspace):
    path = workspace / "report.md"
    path.write_text(DOCUMENT)
    result = await run(skill_registry, "challenge-document", {"document": str(path)}, context)

    assert result.result["resource"] == str(path.resolve())
    challenged = [c["fact_id"] for f in result.result["findings"] for c in f["challenging"]]
    assert challenged == ["f-outage"]
    assert all(f["supporting"] == [] for f in result.result["findings"])


# ============================================================================
# Upload
# ============================================================================


@pytest.mark.asyncio
async def test_upload_inline_rules_and_facts(store, skill_registry, context):
    result = await run(skill_registry, "upload-rules", {
        "rules": "Access must be reviewed quarterly.\nPasswords must rotate every 90 days.",
        "facts": "Backups are encrypted with AES-256.",
        "source": "policy-2024",
    }, context)

    labels = [action["label"] for action in result.result["actions"]]
    assert labels == ["policy-2024#rules", "policy-2024#facts"]
    rules = store.get_aspects_by_resource("policy-2024#rules")
    assert {"Access must be reviewed quarterly.", "Passwords must rotate every 90 days."} <= {
        r["content"] for r in rules
    }
    assert all(r["type"] == "rule" and r["source"] == "policy-2024" for r in rules)
    assert result.result["report"].startswith("# Knowledge Upload Summary")
    assert "## Source: policy-2024#facts" in result.result["report"]


@pytest.mark.asyncio
async def test_upload_file_replaces_resource(store, skill_registry, context, workspace):
    path = workspace / "rules.md"
    path.write_text("Backups must be encrypted at rest.\nAudit logs are kept for a full year.")
    store.replace_resource(str(path), [{"id": "stale", "content": "Old content"}], {})

    result = await run(skill_registry, "upload-rules", {"file": str(path)}, context)

    stored = store.get_aspects_by_resource(str(path))
    assert "stale" not in [a["id"] for a in stored]
    assert [a["type"] for a in stored] == ["rule", "fact"]
    assert all(a["source"] == str(path) for a in stored)
    assert result.result["actions"][0]["type"] == "file"


@pytest.mark.asyncio
async def test_upload_without_input_asks_for_rules(skill_registry, context):
    with pytest.raises(ArgumentValidationError) as exc:
        await run(skill_registry, "upload-rules", {}, context)
    assert exc.value.argument == "rules"


# ============================================================================
# Ranking
# ============================================================================


@pytest.mark.asyncio
async def test_rank_statements_fallback(seeded_store, skill_registry, context):
    result = await run(skill_registry, "rank-statements", {"document": BACKUP_CLAIM, "count": 2}, context)

    payload = result.result
    assert payload["requested"] == 2
    assert payload["returned"] == 2
    assert payload["factIds"][0] == "f-backup"
    assert payload["analysisSource"] == "knowledge"
    assert payload["report"].startswith("# Ranked Statements")
    assert "| 1 | f-backup | 1.00 |" in payload["report"]


@pytest.mark.asyncio
async def test_rank_statements_with_completion_drops_unknown_ids(seeded_store, skill_registry, context):
    completion = FakeCompletion(
        '```json\n{"rankedStatements": ['
        '{"fact_id": "f-outage", "relevance_score": 0.9, "summary": "No outages", "reason": "Incident scope"},'
        '{"fact_id": "f-imaginary", "relevance_score": 0.8}]}\n```'
    )
    result = await run(
        skill_registry, "rank-statements", {"document": BACKUP_CLAIM}, replace(context, completion=completion)
    )

    assert result.result["factIds"] == ["f-outage"]
    assert result.result["ranked"][0]["reason"] == "Incident scope"
    assert result.result["requested"] == 5


@pytest.mark.asyncio
async def test_rank_statements_on_empty_store(store, skill_registry, context):
    result = await run(
        skill_registry, "rank-statements", {"document": "Backups run nightly. Keys rotate yearly."}, context
    )

    assert result.result["analysisSource"] == "document"
    assert [s["statement"] for s in result.result["statements"]] == ["Backups run nightly.", "Keys rotate yearly."]
    assert result.result["report"].startswith("# Key Statements")


@pytest.mark.asyncio
async def test_rank_statements_requires_document(skill_registry, context):
    with pytest.raises(ArgumentValidationError):
        await run(skill_registry, "rank-statements", {"document": "   "}, context)


# ============================================================================
# Help
# ============================================================================


@pytest.mark.asyncio
async def test_show_help(skill_registry, context):
    result = await run(skill_registry, "show-help", {}, context)
    assert result.result["report"].startswith("# Available Actions")
    assert result.result["userRoles"] == ["sysAdmin"]

    filtered = await run(skill_registry, "show-help", {"query": "upload"}, context)
    assert filtered.result["filterApplied"] is True
    assert filtered.result["report"].startswith('# Matching Actions for "upload"')


@pytest.mark.asyncio
async def test_show_help_requires_user(skill_registry, context):
    result = await run(skill_registry, "show-help", {}, replace(context, user=None))
    assert not result.success
    assert result.message == "Please authenticate to view the available actions."
