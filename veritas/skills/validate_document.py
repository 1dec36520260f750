"""List knowledge base facts that back up a document."""

from veritas.skills._common import STATEMENT_STRATEGIES, write_report
from veritas.skills._documents import DocumentAnalysis, analyze_document, findings_section, snapshot_section


def specs():
    return {
        "name": "validate-document",
        "needConfirmation": False,
        "description": "Retrieve knowledge base facts that support the document.",
        "why": "Helps attach evidence before distributing or approving documents.",
        "what": "Analyses the document and lists supporting facts with explanations.",
        "humanDescription": "Validate a document with supporting evidence.",
        "arguments": {
            "document": {
                "type": "string",
                "description": "Document text to validate, or the path of an uploaded file.",
                "required": True,
                "multiline": True,
                "validator": "meaningful_document",
            },
            "highlights": {
                "type": "number",
                "description": "Maximum supporting findings to show (default 6, max 20).",
                "validator": "positive_int:20",
            },
        },
        "requiredArguments": ["document"],
    }


def roles():
    return ["sysAdmin", "Analyst", "Auditor"]


def fallback_report(analysis: DocumentAnalysis) -> str:
    supported = analysis.supporting_total
    verdict = "supported" if supported else "insufficient data"
    return "\n\n".join([
        "# Document Validation Report",
        snapshot_section(analysis),
        findings_section(analysis, support=True, challenge=False),
        f"## Verdict\n{verdict} ({supported} supporting citation(s))",
    ])


async def action(args, ctx):
    strategy = ctx.resolve_strategy(STATEMENT_STRATEGIES)
    analysis = await analyze_document(strategy, ctx, args.get("document"), args.get("highlights"), "validate")

    report = await write_report(
        ctx,
        {"skill": "validate-document", "intent": "validate-document", "resource": analysis.resource},
        "\n".join([
            "Draft a Markdown validation report for the analysed document.",
            "Required sections: # Document Validation Report, ## Document Snapshot, ## Findings, ## Verdict.",
            "List the supporting evidence for each finding without inventing sources.",
        ]),
        analysis.payload(),
        fallback_report(analysis),
        intro="Document validation analysis:",
    )
    return {"success": True, "result": analysis.as_result(report)}
