"""List knowledge base facts that conflict with a document."""

from veritas.skills._common import STATEMENT_STRATEGIES, write_report
from veritas.skills._documents import DocumentAnalysis, analyze_document, findings_section, snapshot_section


def specs():
    return {
        "name": "challenge-document",
        "needConfirmation": False,
        "description": "Find knowledge base facts that contradict statements in the document.",
        "why": "Surfaces conflicts before a document is circulated or approved.",
        "what": "Analyses the document and lists contradicting facts with explanations.",
        "humanDescription": "Challenge a document with contradicting evidence.",
        "arguments": {
            "document": {
                "type": "string",
                "description": "Document text to challenge, or the path of an uploaded file.",
                "required": True,
                "multiline": True,
                "validator": "meaningful_document",
            },
            "highlights": {
                "type": "number",
                "description": "Maximum contradicting findings to show (default 6, max 20).",
                "validator": "positive_int:20",
            },
        },
        "requiredArguments": ["document"],
    }


def roles():
    return ["sysAdmin", "Auditor", "Reviewer"]


def fallback_report(analysis: DocumentAnalysis) -> str:
    conflicts = analysis.challenging_total
    risk = "medium" if conflicts else "uncertain"
    return "\n\n".join([
        "# Document Challenge Report",
        snapshot_section(analysis),
        findings_section(analysis, support=False, challenge=True),
        f"## Risk Assessment\n{risk} ({conflicts} contradicting citation(s))",
    ])


async def action(args, ctx):
    strategy = ctx.resolve_strategy(STATEMENT_STRATEGIES)
    analysis = await analyze_document(strategy, ctx, args.get("document"), args.get("highlights"), "challenge")

    report = await write_report(
        ctx,
        {"skill": "challenge-document", "intent": "challenge-document", "resource": analysis.resource},
        "\n".join([
            "Draft a Markdown challenge report for the analysed document.",
            "Required sections: # Document Challenge Report, ## Document Snapshot, ## Findings, ## Risk Assessment.",
            "List the contradicting evidence for each finding without inventing sources.",
        ]),
        analysis.payload(),
        fallback_report(analysis),
        intro="Document challenge analysis:",
    )
    return {"success": True, "result": analysis.as_result(report)}
