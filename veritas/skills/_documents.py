"""Document analysis shared by the document skills."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from veritas.io.resources import resolve_resource_input
from veritas.skills._common import citation_payload, statement_verdict
from veritas.strategies.base import Aspect, Citation, Strategy

DEFAULT_HIGHLIGHTS = 6
MAX_HIGHLIGHTS = 20
SUMMARY_LENGTH = 400

RECOMMENDATIONS = {
    "supported": "Proceed while keeping the cited evidence on record.",
    "contradicted": "Resolve the highlighted contradictions before approving the document.",
    "mixed": "Review conflicting sections with stakeholders and update the document accordingly.",
    "insufficient data": "Collect additional evidence or clarify the document before further review.",
}


@dataclass
class Finding:
    aspect: Aspect
    supporting: list[Citation] = field(default_factory=list)
    challenging: list[Citation] = field(default_factory=list)


@dataclass
class DocumentAnalysis:
    resource: str | None
    text: str
    aspects: list[Aspect] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)

    @property
    def supporting_total(self) -> int:
        return sum(len(f.supporting) for f in self.findings)

    @property
    def challenging_total(self) -> int:
        return sum(len(f.challenging) for f in self.findings)

    @property
    def verdict(self) -> str:
        return statement_verdict(
            [c for f in self.findings for c in f.supporting],
            [c for f in self.findings for c in f.challenging],
        )

    def payload(self) -> dict[str, Any]:
        return {
            "resource": self.resource,
            "summary": summarise_document(self.text),
            "findings": [
                {
                    "aspect": {k: f.aspect.get(k) for k in ("id", "type", "content", "source")},
                    "supporting": citation_payload(f.supporting),
                    "challenging": citation_payload(f.challenging),
                }
                for f in self.findings
            ],
        }

    def as_result(self, report: str) -> dict[str, Any]:
        return {
            "resource": self.resource,
            "aspects": self.aspects,
            "findings": [
                {"aspect": f.aspect, "supporting": f.supporting, "challenging": f.challenging}
                for f in self.findings
            ],
            "verdict": self.verdict,
            "report": report,
        }


def normalize_highlight_count(value: Any, default: int = DEFAULT_HIGHLIGHTS, maximum: int = MAX_HIGHLIGHTS) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    if number <= 0:
        return default
    return min(maximum, number)


def summarise_document(text: str | None, max_length: int = SUMMARY_LENGTH) -> str:
    if not text:
        return ""
    collapsed = " ".join(text.split())
    if len(collapsed) <= max_length:
        return collapsed
    return f"{collapsed[:max_length - 1]}…"


async def _nothing() -> list[Citation]:
    return []


async def analyze_document(
    strategy: Strategy,
    ctx: Any,
    document: str | None,
    highlights: Any = None,
    mode: str = "audit",
) -> DocumentAnalysis:
    """
    Extract the document's aspects and look up citations for each.

    `mode` is "validate" (support only), "challenge" (contradictions only)
    or "audit" (both).
    """
    limit = normalize_highlight_count(highlights)
    resolved = resolve_resource_input(document, ctx.uploads, ctx.task)
    if not resolved.text:
        return DocumentAnalysis(resource=resolved.resource, text="")

    aspects = await strategy.detect_relevant_aspects_from_single_file(resolved.resource, resolved.text)
    selected = aspects[:limit]
    need_support = mode in ("validate", "audit")
    need_challenge = mode in ("challenge", "audit")

    findings = []
    for aspect in selected:
        content = aspect.get("content") or ""
        supporting, challenging = await asyncio.gather(
            strategy.get_evidences_for_statement(content) if need_support else _nothing(),
            strategy.get_challenges_for_statement(content) if need_challenge else _nothing(),
        )
        findings.append(Finding(aspect=aspect, supporting=supporting, challenging=challenging))

    return DocumentAnalysis(resource=resolved.resource, text=resolved.text, aspects=selected, findings=findings)


def snapshot_section(analysis: DocumentAnalysis) -> str:
    return f"## Document Snapshot\n{summarise_document(analysis.text) or '_No preview available._'}"


def _evidence_lines(citations: list[Citation], label: str, empty: str) -> str:
    if not citations:
        return f"- {empty}"
    lines = []
    for item in citations:
        line = f"- **{label} {item.get('fact_id')}**: {item.get('content')}"
        if item.get("source"):
            line += f" _(source: {item['source']})_"
        if item.get("explanation"):
            line += f" ({item['explanation']})"
        lines.append(line)
    return "\n".join(lines)


def findings_section(analysis: DocumentAnalysis, support: bool = True, challenge: bool = True) -> str:
    """Per-aspect evidence blocks for the static reports."""
    if not analysis.findings:
        return "## Findings\n- No material assertions were extracted for this document."
    blocks = []
    for finding in analysis.findings:
        parts = [f"### {finding.aspect.get('content')}"]
        if support:
            parts += [
                "#### Supporting Evidence",
                _evidence_lines(finding.supporting, "Support", "No supporting citations identified."),
            ]
        if challenge:
            parts += [
                "#### Contradicting Evidence",
                _evidence_lines(finding.challenging, "Challenge", "No contradictions detected."),
            ]
        blocks.append("\n".join(parts))
    return "## Findings\n" + "\n\n".join(blocks)
