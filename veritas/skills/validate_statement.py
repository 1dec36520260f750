"""Find knowledge base evidence that supports a statement."""

from veritas.skills._common import STATEMENT_STRATEGIES, citation_line, citation_payload, write_report


def specs():
    return {
        "name": "validate-statement",
        "needConfirmation": False,
        "description": "Retrieve evidence that confirms the supplied statement.",
        "why": "Provides quick proof or validation for critical claims.",
        "what": "Finds supporting facts and reports the validation verdict.",
        "humanDescription": "Validate a statement with knowledge base evidence.",
        "arguments": {
            "statement": {
                "type": "string",
                "description": "The statement or claim to validate.",
                "llmHint": "Provide the exact claim to validate, not a command.",
                "required": True,
                "multiline": True,
                "validator": "meaningful_statement",
            },
        },
        "requiredArguments": ["statement"],
    }


def roles():
    return ["sysAdmin", "Analyst", "Auditor"]


def fallback_report(statement: str, citations: list) -> str:
    evidence = (
        "\n".join(citation_line(item) for item in citations)
        if citations
        else "- No supporting evidence was located in the current knowledge base."
    )
    verdict = "supported" if citations else "unverified"
    steps = (
        "- Keep the cited evidence with the claim when sharing it."
        if citations
        else "- Add supporting facts to the knowledge base or revise the claim."
    )
    return "\n\n".join([
        "# Validation Brief",
        f"## Statement\n{statement}",
        f"## Supporting Evidence\n{evidence}",
        f"## Verdict\n{verdict}",
        f"## Recommended Actions\n{steps}",
    ])


async def action(args, ctx):
    statement = args["statement"]
    strategy = ctx.resolve_strategy(STATEMENT_STRATEGIES)
    citations = await strategy.get_evidences_for_statement(statement)

    report = await write_report(
        ctx,
        {"skill": "validate-statement", "intent": "validate", "statement": statement},
        "\n".join([
            "Create a Markdown validation brief for the supplied statement.",
            "Include sections: # Validation Brief, ## Statement, ## Supporting Evidence, ## Verdict, ## Recommended Actions.",
            "Use bullet lists for evidence and do not fabricate IDs or sources.",
        ]),
        {"statement": statement, "citations": citation_payload(citations)},
        fallback_report(statement, citations),
    )
    return {
        "success": True,
        "result": {
            "statement": statement,
            "citations": citations,
            "verdict": "supported" if citations else "unverified",
            "report": report,
        },
    }
