"""Audit a document for supported and contradicted assertions."""

from veritas.skills._common import STATEMENT_STRATEGIES, write_report
from veritas.skills._documents import (
    RECOMMENDATIONS,
    DocumentAnalysis,
    analyze_document,
    findings_section,
    snapshot_section,
)


def specs():
    return {
        "name": "audit-document",
        "needConfirmation": False,
        "description": "Audit a document to identify statements that are supported or contradicted by the knowledge base.",
        "why": "Generates a balanced view of strengths and gaps in a document before reviews or sign-off.",
        "what": "Produces a report with supporting and contradicting evidence plus an overall verdict.",
        "humanDescription": "Audit a document for support vs contradictions.",
        "arguments": {
            "document": {
                "type": "string",
                "description": "Full text of the document to audit, or the path of an uploaded file.",
                "llmHint": (
                    "Provide the full document text you want to audit. The document should be "
                    "substantial enough for a meaningful analysis."
                ),
                "required": True,
                "multiline": True,
                "validator": "meaningful_document",
            },
            "highlights": {
                "type": "number",
                "description": "Maximum number of findings to report (default 6, max 20).",
                "validator": "positive_int:20",
            },
        },
        "requiredArguments": ["document"],
    }


def roles():
    return ["sysAdmin", "Auditor"]


def fallback_report(analysis: DocumentAnalysis) -> str:
    verdict = analysis.verdict
    return "\n\n".join([
        "# Document Audit Report",
        snapshot_section(analysis),
        findings_section(analysis),
        f"## Overall Verdict\n{verdict}",
        f"## Recommendations\n- {RECOMMENDATIONS[verdict]}",
    ])


async def action(args, ctx):
    strategy = ctx.resolve_strategy(STATEMENT_STRATEGIES)
    analysis = await analyze_document(strategy, ctx, args.get("document"), args.get("highlights"), "audit")

    report = await write_report(
        ctx,
        {"skill": "audit-document", "intent": "audit-document", "resource": analysis.resource},
        "\n".join([
            "Draft a Markdown audit report for the analysed document.",
            "Required sections: # Document Audit Report, ## Document Snapshot, ## Findings, ## Overall Verdict, ## Recommendations.",
            "For each finding include subsections for supporting and contradicting evidence.",
            "Summarise the overall verdict as supported, contradicted, mixed, or insufficient.",
            "Use only the supplied data and avoid inventing sources.",
        ]),
        analysis.payload(),
        fallback_report(analysis),
        intro="Document audit analysis:",
    )
    return {"success": True, "result": analysis.as_result(report)}
