"""Rank knowledge base statements by relevance to a document."""

import re

from loguru import logger

from veritas.errors import ArgumentValidationError, CompletionError
from veritas.io.resources import resolve_resource_input
from veritas.knowledge.similarity import select_top_by_similarity
from veritas.strategies.parsing import extract_json_payload

DEFAULT_COUNT = 5
MAX_COUNT = 25
MAX_CANDIDATES = 60
SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def specs():
    return {
        "name": "rank-statements",
        "needConfirmation": False,
        "description": "Analyze a document and list the most relevant knowledge base statements.",
        "why": "Quickly surfaces the facts that matter most for a document review or audit.",
        "what": "Ranks knowledge base facts by relevance to the supplied document and provides a short rationale.",
        "humanDescription": "Rank the top knowledge base statements for a document.",
        "arguments": {
            "document": {
                "type": "string",
                "description": "Full text of the document or excerpt to compare against the knowledge base.",
                "required": True,
                "multiline": True,
                "validator": "non_empty",
            },
            "count": {
                "type": "number",
                "description": "How many statements to return (default 5, max 25).",
                "validator": "positive_int:25",
            },
        },
        "requiredArguments": ["document"],
    }


def roles():
    return ["sysAdmin", "Analyst", "Reviewer", "Auditor", "KnowledgeAdmin"]


def normalize_count(value) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_COUNT
    if number <= 0:
        return DEFAULT_COUNT
    return min(number, MAX_COUNT)


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def _score(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def build_prompt(document: str, facts: list, count: int) -> str:
    block = "\n".join(f"- [{fact['id']}] ({fact.get('type')}) {fact.get('content')}" for fact in facts)
    return "\n".join([
        "You are Veritas, a retrieval expert.",
        "Analyse the supplied document and identify the most relevant factual statements from the knowledge base.",
        "",
        "Document:",
        '"""',
        document,
        '"""',
        "",
        f"Knowledge base facts ({len(facts)} candidates):",
        block,
        "",
        f"Return the {count} most relevant facts as JSON with the shape:",
        '{ "rankedStatements": [ { "fact_id": "fact identifier", "relevance_score": 0.0-1.0, '
        '"summary": "short restatement", "reason": "why it is relevant" } ] }',
        "If fewer than the requested number are relevant, return only the ones that apply.",
    ])


def fallback_ranking(document: str, facts: list, count: int) -> list[dict]:
    ranked = select_top_by_similarity(document, facts, "content", count)
    return [
        {
            "fact_id": fact["id"],
            "relevance_score": round((count - index) / count, 2),
            "summary": (fact.get("content") or "")[:120],
            "reason": "Selected via lexical similarity fallback.",
        }
        for index, fact in enumerate(ranked)
    ]


async def _rank_with_completion(completion, document: str, facts: list, count: int) -> list[dict]:
    known = {fact["id"] for fact in facts}
    try:
        raw = await completion.complete(
            {"skill": "rank-statements", "intent": "rank-statements"},
            build_prompt(document, facts, count),
            mode="precision",
        )
    except CompletionError as e:
        logger.warning(f"Ranking via completion failed, using fallback ranking: {e}")
        return []
    parsed = extract_json_payload(raw)
    entries = parsed.get("rankedStatements") if isinstance(parsed, dict) else parsed
    if not isinstance(entries, list):
        return []
    ranked = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        fact_id = _text(entry.get("fact_id"))
        if fact_id not in known:
            continue
        ranked.append({
            "fact_id": fact_id,
            "relevance_score": _score(entry.get("relevance_score", entry.get("score"))),
            "summary": _text(entry.get("summary") or entry.get("statement") or entry.get("content")),
            "reason": _text(entry.get("reason") or entry.get("explanation")),
        })
    return ranked[:count]


def _sentence_statements(document: str, count: int) -> list[dict]:
    sentences = [part.strip() for part in SENTENCE_SPLIT.split(document) if part.strip()][:count]
    return [
        {
            "statement": sentence,
            "reason": "Derived directly from the document (fallback).",
            "confidence": round((count - index) / count, 2),
        }
        for index, sentence in enumerate(sentences)
    ]


async def statements_without_knowledge(completion, document: str, count: int) -> list[dict]:
    """Key statements of the document itself, used while the store is empty."""
    if completion is not None:
        prompt = "\n".join([
            "You are Veritas. The knowledge base is currently empty.",
            f"Extract the {count} most important factual statements from the provided document "
            "and explain why each matters.",
            "",
            "Document:",
            '"""',
            document,
            '"""',
            "",
            'Return JSON: { "statements": [ { "statement": "string", "reason": "string", "confidence": 0-1 } ] }',
        ])
        try:
            parsed = extract_json_payload(await completion.complete(
                {"skill": "rank-statements", "intent": "extract-statements"}, prompt, mode="precision"
            ))
        except CompletionError as e:
            logger.warning(f"Statement extraction failed, using sentence fallback: {e}")
            parsed = None
        entries = parsed.get("statements") if isinstance(parsed, dict) else parsed
        if isinstance(entries, list):
            statements = [
                {
                    "statement": _text(entry.get("statement") or entry.get("summary") or entry.get("text")),
                    "reason": _text(entry.get("reason") or entry.get("explanation")),
                    "confidence": _score(entry.get("confidence", 0.5)),
                }
                for entry in entries
                if isinstance(entry, dict)
            ]
            statements = [item for item in statements if item["statement"]][:count]
            if statements:
                return statements
    return _sentence_statements(document, count)


def _table(ranked: list, facts_by_id: dict) -> str:
    lines = ["| Rank | Fact | Score | Summary | Reason |", "| --- | --- | --- | --- | --- |"]
    for index, item in enumerate(ranked, start=1):
        fact = facts_by_id.get(item["fact_id"], {})
        summary = item["summary"] or (fact.get("content") or "")[:120]
        lines.append(f"| {index} | {item['fact_id']} | {item['relevance_score']:.2f} | {summary} | {item['reason']} |")
    return "\n".join(lines)


async def action(args, ctx):
    resolved = resolve_resource_input(args.get("document"), ctx.uploads, ctx.task)
    document = resolved.text.strip()
    if not document:
        raise ArgumentValidationError("document", "Provide a document to analyse.")

    count = normalize_count(args.get("count"))
    facts = ctx.store.list_all_aspects()

    if not facts:
        statements = await statements_without_knowledge(ctx.completion, document, count)
        lines = ["# Key Statements", "", "_The knowledge base is empty; statements were taken from the document._", ""]
        lines += [f"{i}. {item['statement']} ({item['reason']})" for i, item in enumerate(statements, start=1)]
        return {
            "success": True,
            "result": {
                "requested": count,
                "returned": len(statements),
                "factIds": [],
                "statements": statements,
                "analysisSource": "document",
                "report": "\n".join(lines),
            },
        }

    candidates = select_top_by_similarity(document, facts, "content", min(len(facts), MAX_CANDIDATES))
    ranked = []
    if ctx.completion is not None:
        ranked = await _rank_with_completion(ctx.completion, document, candidates, count)
    if not ranked:
        ranked = fallback_ranking(document, candidates, count)

    facts_by_id = {fact["id"]: fact for fact in facts}
    return {
        "success": True,
        "result": {
            "requested": count,
            "returned": len(ranked),
            "factIds": [item["fact_id"] for item in ranked],
            "ranked": ranked,
            "analysisSource": "knowledge",
            "report": f"# Ranked Statements\n\n{_table(ranked, facts_by_id)}",
        },
    }
