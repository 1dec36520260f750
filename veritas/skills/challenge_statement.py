"""Find knowledge base evidence that contradicts a statement."""

from veritas.skills._common import STATEMENT_STRATEGIES, citation_line, citation_payload, write_report


def specs():
    return {
        "name": "challenge-statement",
        "needConfirmation": False,
        "description": "Find evidence from the knowledge base that contradicts the supplied statement.",
        "why": "Highlights risks by exposing claims that conflict with established facts.",
        "what": "Searches for contradicting facts and reports the findings.",
        "humanDescription": "Retrieve evidence that disproves a statement.",
        "arguments": {
            "statement": {
                "type": "string",
                "description": "The statement or claim to challenge.",
                "llmHint": (
                    "Provide the exact claim you want to challenge, for example "
                    "\"All systems are currently secure\". Avoid command-like inputs."
                ),
                "required": True,
                "multiline": True,
                "validator": "meaningful_statement",
            },
        },
        "requiredArguments": ["statement"],
    }


def roles():
    return ["sysAdmin", "Auditor", "Reviewer"]


def fallback_report(statement: str, citations: list) -> str:
    if citations:
        contradictions = "\n".join(citation_line(item) for item in citations)
        risk = "medium"
        steps = (
            "- Investigate cited contradictions and address any conflicts.\n"
            "- Confirm sources to determine severity."
        )
    else:
        contradictions = "- No contradictions were located in the current knowledge base."
        risk = "uncertain"
        steps = "- Capture additional evidence or monitor for conflicting information."
    return "\n\n".join([
        "# Challenge Brief",
        f"## Statement\n{statement}",
        f"## Contradicting Evidence\n{contradictions}",
        f"## Risk Assessment\n{risk}",
        f"## Recommended Actions\n{steps}",
    ])


async def action(args, ctx):
    statement = args["statement"]
    strategy = ctx.resolve_strategy(STATEMENT_STRATEGIES)
    citations = await strategy.get_challenges_for_statement(statement)

    report = await write_report(
        ctx,
        {"skill": "challenge-statement", "intent": "challenge", "statement": statement},
        "\n".join([
            "Create a Markdown challenge brief for the supplied statement.",
            "Include sections: # Challenge Brief, ## Statement, ## Contradicting Evidence, ## Risk Assessment, ## Recommended Actions.",
            "Summarise the severity based on available contradictions. If none exist, highlight the lack of evidence.",
            "Use bullet lists for evidence and do not fabricate IDs or sources.",
        ]),
        {"statement": statement, "citations": citation_payload(citations)},
        fallback_report(statement, citations),
    )
    return {"success": True, "result": {"statement": statement, "citations": citations, "report": report}}
