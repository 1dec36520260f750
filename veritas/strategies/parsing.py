"""Parsing of completion output into aspects and citations.

Aspect parsing runs an explicit chain of parsers; the first one that yields
anything wins:

1. fenced ```json blocks
2. markdown sections (headings, `key: value` lines, numbered ideas, bullets
   with `key: value | key: value` structure)
3. plain bullet lines
"""

import json
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from loguru import logger

JSON_BLOCK_PATTERN = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
GENERIC_JSON_PATTERN = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")
BULLET_PATTERN = re.compile(r"^\s*[-*•]\s+(.*)$", re.MULTILINE)
HEADING_PATTERN = re.compile(r"^\s{0,3}#{1,6}\s+(.*?)\s*#*\s*$")
NUMBERED_PATTERN = re.compile(r"^\s*\d+[.)]\s+(.*)$")
KEY_VALUE_PATTERN = re.compile(r"^\s*\**([A-Za-z][\w \-]{0,40}?)\**\s*:\s+(.+)$")

RULE_KEYS = ("rule", "rules")
FACT_KEYS = ("fact", "facts")

AspectParser = Callable[[str, str], list[dict[str, Any]]]


def extract_json_blocks(markdown: str | None) -> list[Any]:
    """Every fenced JSON block that parses; malformed blocks are skipped."""
    if not markdown or not isinstance(markdown, str):
        return []
    blocks = []
    for match in JSON_BLOCK_PATTERN.finditer(markdown):
        raw = match.group(1)
        if not raw or not raw.strip():
            continue
        try:
            blocks.append(json.loads(raw))
        except json.JSONDecodeError:
            logger.debug("Skipping malformed JSON block in completion output")
    return blocks


def extract_json_payload(raw: Any) -> Any:
    """First fenced JSON block, else the first brace/bracket span, else None."""
    if isinstance(raw, (dict, list)):
        return raw
    if not raw or not isinstance(raw, str):
        return None
    blocks = extract_json_blocks(raw)
    if blocks:
        return blocks[0]
    match = GENERIC_JSON_PATTERN.search(raw)
    if match:
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return None


def _has_content(value: Mapping[str, Any]) -> bool:
    return bool(value.get("content") or value.get("statement") or value.get("text"))


def _key_type(key: Any, fallback: str) -> str:
    lowered = key.lower() if isinstance(key, str) else ""
    if lowered in RULE_KEYS:
        return "rule"
    if lowered in FACT_KEYS:
        return "fact"
    return fallback


def flatten_aspect_collection(collection: Any, default_type: str | None = None) -> list[dict[str, Any]]:
    """
    Flatten the shapes completion backends produce into a list of raw aspects.

    Handles arrays of strings or objects, `{facts: [...], rules: [...]}`
    objects, keyed objects of aspects or strings, and bare strings.
    """
    fallback = default_type or "fact"
    results: list[dict[str, Any]] = []

    if isinstance(collection, list):
        for entry in collection:
            if isinstance(entry, str):
                if entry.strip():
                    results.append({"type": fallback, "content": entry.strip()})
            elif isinstance(entry, Mapping):
                results.append({**entry, "type": entry.get("type") or fallback})
        return results

    if isinstance(collection, Mapping):
        for key, value in collection.items():
            if isinstance(value, list):
                results.extend(flatten_aspect_collection(value, _key_type(key, fallback)))
            elif isinstance(value, Mapping) and _has_content(value):
                inferred = "rule" if _key_type(key, fallback) == "rule" else fallback
                results.append({**value, "type": value.get("type") or inferred})
            elif isinstance(value, str) and value.strip():
                inferred = "rule" if _key_type(key, fallback) == "rule" else fallback
                results.append({"type": inferred, "title": key, "content": value.strip()})
        if not results and _has_content(collection):
            results.append({**collection, "type": collection.get("type") or fallback})
        return results

    if isinstance(collection, str) and collection.strip():
        results.append({"type": fallback, "content": collection.strip()})
    return results


def _parse_structured_bullet(text: str, fallback: str) -> dict[str, Any] | None:
    """Parse `id: f1 | type: rule | content: ...` bullets."""
    parts = re.split(r"\s*\|\s*", text)
    if len(parts) < 2:
        return None
    parsed: dict[str, str] = {}
    for part in parts:
        key, sep, rest = part.partition(":")
        if key.strip() and sep:
            parsed[key.strip().lower()] = rest.strip()
    content = parsed.get("content") or parsed.get("statement") or parsed.get("text")
    if not content:
        return None
    return {
        "id": parsed.get("id"),
        "type": parsed.get("type") or fallback,
        "title": parsed.get("title"),
        "content": content,
        "source": parsed.get("source") or parsed.get("reference"),
    }


def _split_sections(markdown: str) -> list[tuple[str | None, list[str]]]:
    sections: list[tuple[str | None, list[str]]] = []
    heading: str | None = None
    lines: list[str] = []
    for line in markdown.splitlines():
        match = HEADING_PATTERN.match(line)
        if match:
            if heading is not None or lines:
                sections.append((heading, lines))
            heading, lines = match.group(1), []
        else:
            lines.append(line)
    if heading is not None or lines:
        sections.append((heading, lines))
    return sections


def _section_type(heading: str | None, fallback: str) -> str:
    lowered = (heading or "").lower()
    if re.search(r"\brules?\b", lowered):
        return "rule"
    if re.search(r"\bfacts?\b", lowered):
        return "fact"
    return fallback


def parse_json_blocks(markdown: str, default_type: str) -> list[dict[str, Any]]:
    results: list[dict[str, Any]] = []
    for block in extract_json_blocks(markdown):
        results.extend(flatten_aspect_collection(block, default_type))
    return results


def parse_markdown_sections(markdown: str, default_type: str) -> list[dict[str, Any]]:
    """Headed markdown: headings hint the type, bodies hold the aspects."""
    sections = _split_sections(markdown or "")
    if not any(heading for heading, _ in sections):
        return []

    results: list[dict[str, Any]] = []
    for heading, lines in sections:
        section_type = _section_type(heading, default_type)
        key_values: dict[str, str] = {}
        for line in lines:
            bullet = BULLET_PATTERN.match(line)
            if bullet:
                text = bullet.group(1).strip()
                if text:
                    results.append(
                        _parse_structured_bullet(text, section_type)
                        or {"type": section_type, "content": text}
                    )
                continue
            numbered = NUMBERED_PATTERN.match(line)
            if numbered and numbered.group(1).strip():
                results.append({"type": section_type, "content": numbered.group(1).strip()})
                continue
            pair = KEY_VALUE_PATTERN.match(line)
            if pair:
                key_values[pair.group(1).strip()] = pair.group(2).strip()
        if key_values:
            results.extend(flatten_aspect_collection(key_values, section_type))
    return results


def parse_bullets(markdown: str, default_type: str) -> list[dict[str, Any]]:
    results = []
    for match in BULLET_PATTERN.finditer(markdown or ""):
        text = match.group(1).strip()
        if text:
            results.append({"type": default_type, "content": text})
    return results


ASPECT_PARSERS: tuple[AspectParser, ...] = (
    parse_json_blocks,
    parse_markdown_sections,
    parse_bullets,
)


def unique_aspects(entries: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Drop entries without content and duplicates by id, else by lowercased content."""
    seen_ids: set[str] = set()
    seen_content: set[str] = set()
    results = []
    for entry in entries:
        if not entry:
            continue
        content = entry.get("content")
        if not isinstance(content, str) or not content.strip():
            continue
        aspect_id = entry.get("id") if isinstance(entry.get("id"), str) else None
        if aspect_id:
            if aspect_id in seen_ids:
                continue
            seen_ids.add(aspect_id)
        else:
            key = content.lower()
            if key in seen_content:
                continue
            seen_content.add(key)
        results.append(dict(entry))
    return results


def parse_aspects(
    markdown: str | None,
    default_type: str = "fact",
    parsers: tuple[AspectParser, ...] = ASPECT_PARSERS,
) -> list[dict[str, Any]]:
    """Run the parser chain and return deduplicated aspects typed fact or rule."""
    if not markdown:
        return []
    results: list[dict[str, Any]] = []
    for parser in parsers:
        results = parser(markdown, default_type)
        if results:
            break
        logger.debug(f"{parser.__name__} found no aspects, trying next parser")

    aspects = unique_aspects(results)
    for aspect in aspects:
        aspect_type = aspect.get("type")
        aspect["type"] = "rule" if isinstance(aspect_type, str) and aspect_type.lower() == "rule" else "fact"
    return aspects


def parse_citations(markdown: str | None) -> list[dict[str, Any]]:
    """
    Citations from the first JSON block that has any.

    Accepts a bare array, a `citations` array, or `supporting`/`challenging`
    arrays (which set the decision).
    """
    for block in extract_json_blocks(markdown):
        if isinstance(block, list):
            return [entry for entry in block if isinstance(entry, Mapping)]
        if not isinstance(block, Mapping):
            continue
        if isinstance(block.get("citations"), list):
            return [entry for entry in block["citations"] if isinstance(entry, Mapping)]
        merged = []
        for key, decision in (("supporting", "support"), ("challenging", "challenge")):
            for entry in block.get(key) or []:
                if isinstance(entry, Mapping):
                    merged.append({"decision": decision, **entry})
        if merged:
            return merged
    return []


def map_citations(
    citations: list[Mapping[str, Any]],
    context_aspects: list[Mapping[str, Any]],
    all_aspects: list[Mapping[str, Any]],
    fallback_decision: str,
) -> list[dict[str, Any]]:
    """Resolve citations to stored aspects; citations with unknown ids are dropped."""
    if not citations:
        return []
    lookup: dict[str, Mapping[str, Any]] = {}
    for aspect in [*all_aspects, *context_aspects]:
        if aspect and aspect.get("id"):
            lookup.setdefault(aspect["id"], aspect)

    results = []
    for entry in citations:
        cited = entry.get("id") or entry.get("fact_id") or entry.get("rule_id")
        matched = lookup.get(cited) if isinstance(cited, str) else None
        if matched is None:
            if cited:
                logger.debug(f"Dropping citation of unknown aspect {cited}")
            continue
        results.append({
            "fact_id": matched["id"],
            "type": matched.get("type"),
            "content": matched.get("content"),
            "source": matched.get("source") or matched.get("resource") or None,
            "explanation": entry.get("explanation") or entry.get("reason") or entry.get("justification") or None,
            "decision": entry.get("decision") or fallback_decision,
        })
    return results
