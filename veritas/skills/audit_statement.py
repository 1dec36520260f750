"""Weigh supporting and contradicting evidence for a statement."""

import asyncio

from veritas.skills._common import (
    STATEMENT_STRATEGIES,
    citation_line,
    citation_payload,
    statement_verdict,
    write_report,
)


def specs():
    return {
        "name": "audit-statement",
        "needConfirmation": False,
        "description": "Assess whether a specific statement is supported or contradicted by the knowledge base.",
        "why": "Determines alignment between a claim and recorded evidence.",
        "what": "Analyses a single statement and returns supporting and contradicting facts with a verdict.",
        "humanDescription": "Audit a statement against the knowledge base.",
        "arguments": {
            "statement": {
                "type": "string",
                "description": "The statement or claim to audit.",
                "required": True,
                "multiline": True,
                "validator": "meaningful_statement",
            },
        },
        "requiredArguments": ["statement"],
    }


def roles():
    return ["sysAdmin", "Auditor"]


def _section(title: str, citations: list, empty: str) -> str:
    body = "\n".join(citation_line(item) for item in citations) if citations else f"- {empty}"
    return f"## {title}\n{body}"


def fallback_report(statement: str, supporting: list, challenging: list, verdict: str) -> str:
    return "\n\n".join([
        "# Statement Audit",
        f"## Statement\n{statement}",
        _section("Supporting Evidence", supporting, "No supporting facts were found."),
        _section("Contradicting Evidence", challenging, "No contradictions were found."),
        f"## Verdict\n{verdict}",
    ])


async def action(args, ctx):
    statement = args["statement"]
    strategy = ctx.resolve_strategy(STATEMENT_STRATEGIES)
    supporting, challenging = await asyncio.gather(
        strategy.get_evidences_for_statement(statement),
        strategy.get_challenges_for_statement(statement),
    )
    verdict = statement_verdict(supporting, challenging)

    report = await write_report(
        ctx,
        {"skill": "audit-statement", "intent": "audit", "statement": statement},
        "\n".join([
            "Create a Markdown audit of the supplied statement.",
            "Include sections: # Statement Audit, ## Statement, ## Supporting Evidence, ## Contradicting Evidence, ## Verdict.",
            "State the verdict as supported, contradicted, mixed, or insufficient data.",
            "Use only the supplied citations and do not fabricate IDs or sources.",
        ]),
        {
            "statement": statement,
            "verdict": verdict,
            "supporting": citation_payload(supporting),
            "challenging": citation_payload(challenging),
        },
        fallback_report(statement, supporting, challenging, verdict),
    )
    return {
        "success": True,
        "result": {
            "statement": statement,
            "verdict": verdict,
            "supporting": supporting,
            "challenging": challenging,
            "report": report,
        },
    }
