"""Prompt builders for aspect extraction and citation lookup."""

from collections.abc import Mapping, Sequence
from typing import Any


def build_extraction_prompt(resource: str | None, statement: str | None, default_type: str | None) -> str:
    scope = f'resource "{resource}"' if resource else "statement"
    focus = (
        "Extract the rules and governance constraints that appear most relevant."
        if default_type == "rule"
        else "Extract the key facts and governing rules that appear most relevant."
    )
    lines = [
        f"Analyse the {scope}.",
        focus,
        f'Give extra weight to aspects related to: "{statement}".' if statement else None,
        "Respond with a Markdown document that includes exactly one fenced JSON block.",
        "The JSON must contain a top-level object or array with `facts` and/or `rules` arrays.",
        'Each array item needs: "id" (string), "type" ("fact" or "rule"), "content", '
        'optional "rationale", "source", "tags" (string array).',
        "After the JSON block, add a short Markdown bullet list summary.",
    ]
    return "\n".join(line for line in lines if line)


def build_citation_prompt(statement: str, aspects: Sequence[Mapping[str, Any]], decision: str) -> str:
    intent = (
        "Identify stored facts or rules that contradict or weaken the statement."
        if decision == "challenge"
        else "Identify stored facts or rules that support the statement."
    )
    inventory = "\n".join(
        f"- id: {a.get('id')} | type: {a.get('type')} | "
        f"source: {a.get('source') or a.get('resource') or a.get('resourceKey') or 'unknown'} | "
        f"content: {a.get('content')}"
        for a in aspects
    ) or "- (no aspects)"
    return "\n".join([
        intent,
        f'Statement: "{statement}"',
        "Consider only the provided knowledge entries:",
        inventory,
        "Return a Markdown document that contains a JSON block with a `citations` array.",
        'Each citation entry must include: "id", "decision" ("support" or "challenge"), "explanation", "source".',
        "After the JSON block add a brief Markdown conclusion.",
    ])
