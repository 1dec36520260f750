"""Add rules and facts to the knowledge base."""

import time

from veritas.errors import ArgumentValidationError
from veritas.skills._common import STATEMENT_STRATEGIES, write_report

HIGHLIGHT_LIMIT = 5


def specs():
    return {
        "name": "upload-rules",
        "needConfirmation": True,
        "description": (
            "Upload, import, or add rules and facts to the knowledge base. "
            "Supports JSON or newline text inputs."
        ),
        "why": "Keeps the knowledge base updated with the latest rules and supporting evidence.",
        "what": "Reads structured data and inserts or updates rule and fact records in the knowledge store.",
        "humanDescription": "Upload new rules and supporting facts.",
        "arguments": {
            "file": {
                "type": "string",
                "description": "Optional file (or uploaded file) containing rules/facts (JSON or text).",
                "llmHint": "You can name a local or uploaded file to import.",
            },
            "rules": {
                "type": "string",
                "description": "Rules to add (JSON array or newline text).",
                "llmHint": "You can provide the rules directly as a JSON array or as newline-separated text.",
                "multiline": True,
                "validator": "require_any_of:file,facts",
            },
            "facts": {
                "type": "string",
                "description": "Facts or evidence entries (JSON array or newline text).",
                "llmHint": "You can provide the facts directly as a JSON array or as newline-separated text.",
                "multiline": True,
            },
            "source": {
                "type": "string",
                "description": "Default source or reference applied when entries omit a source.",
                "llmHint": "Optionally, you can specify a default source for the rules and facts.",
            },
        },
        "requiredArguments": [],
    }


def roles():
    return ["sysAdmin", "KnowledgeAdmin"]


def _counts(aspects: list) -> tuple[int, int]:
    rules = sum(1 for aspect in aspects if aspect.get("type") == "rule")
    return rules, len(aspects) - rules


def fallback_report(actions: list) -> str:
    header = "# Knowledge Upload Summary"
    if not actions:
        return f"{header}\n\n- No rules or facts were recognised in the provided inputs."

    total_rules = total_facts = 0
    sections = []
    for entry in actions:
        rules, facts = _counts(entry["aspects"])
        total_rules += rules
        total_facts += facts
        lines = [f"## Source: {entry['label']}", f"- Rules stored: {rules}", f"- Facts stored: {facts}"]
        if entry["aspects"]:
            lines.append("### Highlights")
            for aspect in entry["aspects"][:HIGHLIGHT_LIMIT]:
                lines.append(f"  - **{aspect.get('id')}** ({aspect.get('type')}): {aspect.get('content')}")
            extra = len(entry["aspects"]) - HIGHLIGHT_LIMIT
            if extra > 0:
                lines.append(f"  - ... {extra} additional entries")
        sections.append("\n".join(lines))

    return "\n\n".join([
        header,
        f"## Totals\n- Rules stored: {total_rules}\n- Facts stored: {total_facts}",
        *sections,
        "## Next Steps\n- Validate newly added knowledge with audit or validation skills as needed.",
    ])


def _with_source(aspects: list, source) -> list:
    return [{**aspect, "source": aspect.get("source") or source or None} for aspect in aspects]


def _inline_key(kind: str, source) -> str:
    return f"{source}#{kind}" if source else f"inline:{kind}#{int(time.time() * 1000)}"


async def action(args, ctx):
    file = args.get("file")
    rules = args.get("rules")
    facts = args.get("facts")
    source = args.get("source")
    if not (file or rules or facts):
        raise ArgumentValidationError(
            "rules", "Please provide rules or facts to upload, either directly or in a file."
        )

    strategy = ctx.resolve_strategy(STATEMENT_STRATEGIES)
    actions = []

    if file:
        detected = await strategy.detect_relevant_aspects_from_single_file(file, source or "")
        enriched = [{**aspect, "source": aspect.get("source") or source or file} for aspect in detected]
        if enriched:
            ctx.store.replace_resource(file, enriched, {"statement": source or "", "defaultType": "fact"})
            actions.append({"label": file, "type": "file", "aspects": enriched})

    if rules:
        text = f"Rules from {source}:\n{rules}" if source else rules
        detected = _with_source(await strategy.detect_rules_from_statement(text), source)
        if detected:
            key = _inline_key("rules", source)
            ctx.store.merge_resource(key, detected, {"statement": text, "defaultType": "rule"})
            actions.append({"label": key, "type": "rules", "aspects": detected})

    if facts:
        text = f"Facts from {source}:\n{facts}" if source else facts
        detected = _with_source(await strategy.detect_relevant_aspects_from_single_file(None, text), source)
        if detected:
            key = _inline_key("facts", source)
            ctx.store.merge_resource(key, detected, {"statement": text, "defaultType": "fact"})
            actions.append({"label": key, "type": "facts", "aspects": detected})

    payload = {
        "source": source,
        "actions": [
            {
                "label": entry["label"],
                "type": entry["type"],
                "aspects": [
                    {k: aspect.get(k) for k in ("id", "type", "content", "source")}
                    for aspect in entry["aspects"]
                ],
            }
            for entry in actions
        ],
    }
    report = await write_report(
        ctx,
        {"skill": "upload-rules", "intent": "ingest-knowledge", "source": source},
        "\n".join([
            "Summarise the uploaded rules and facts in Markdown.",
            "Sections: # Knowledge Upload Summary, ## Totals, one ## Source section per input, ## Next Steps.",
            "For each source, list counts of rules vs facts and highlight notable entries.",
            "If no entries were extracted, state that nothing was stored.",
            "Use only the supplied data.",
        ]),
        payload,
        fallback_report(actions),
        intro="Upload payload:",
    )
    return {"success": True, "result": {"actions": actions, "report": report}}
