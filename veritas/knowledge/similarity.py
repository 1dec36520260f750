"""Lexical similarity helpers for picking relevant aspects and ranking records."""

import re
from collections.abc import Mapping, Sequence
from typing import Any

MAX_CONTEXT_ASPECTS = 30
RULE_BONUS = 0.5

TOKEN_PATTERN = re.compile(r"\b[0-9a-z]{3,}\b", re.ASCII)
RANKING_TOKEN_PATTERN = re.compile(r"\b[a-z0-9][a-z0-9_-]*\b", re.ASCII)

STOP_WORDS = frozenset({
    "the", "and", "for", "with", "from", "that", "this", "have", "has",
    "been", "will", "shall", "could", "would", "should", "into", "onto",
    "about", "after", "before", "where", "when", "your", "their", "there",
    "which", "while", "within", "without", "through", "against", "under",
    "over", "between", "because", "during", "each", "other", "such",
})


def tokenize(text: Any) -> set[str]:
    """Lowercased word tokens of three or more alphanumerics."""
    return set(TOKEN_PATTERN.findall(str(text or "").lower()))


def score_aspect(reference_tokens: set[str], aspect: Mapping[str, Any] | None) -> float:
    """
    Token overlap between a query and an aspect.

    Tags count as extra tokens of the aspect, and rules get a fixed bonus so
    they outrank facts with the same overlap.
    """
    if not aspect or not aspect.get("content"):
        return 0
    tokens = tokenize(aspect["content"])
    for tag in aspect.get("tags") or []:
        if isinstance(tag, str) and tag.strip():
            tokens.add(tag.strip().lower())
    overlap = len(tokens & reference_tokens)
    return overlap + RULE_BONUS if aspect.get("type") == "rule" else overlap


def select_top_aspects(
    statement: str,
    aspects: Sequence[Mapping[str, Any]] | None,
    limit: int = MAX_CONTEXT_ASPECTS,
) -> list[Mapping[str, Any]]:
    """Highest scoring aspects first; equal scores keep their original order."""
    if not aspects:
        return []
    reference = tokenize(statement)
    ranked = sorted(aspects, key=lambda aspect: -score_aspect(reference, aspect))
    return ranked[:limit]


def ranking_tokens(text: Any) -> list[str]:
    """Unique tokens for general ranking, without stop words."""
    if not text or not isinstance(text, str):
        return []
    found = RANKING_TOKEN_PATTERN.findall(text.lower())
    return list(dict.fromkeys(t for t in found if len(t) >= 3 and t not in STOP_WORDS))


def similarity_score(query_tokens: set[str], text: str) -> float:
    """Shared tokens divided by the size of the combined token set."""
    target = ranking_tokens(text)
    if not target:
        return 0.0
    shared = [t for t in target if t in query_tokens]
    if not shared:
        return 0.0
    return len(shared) / len(query_tokens | set(target))


def select_top_by_similarity(
    query: str,
    records: Sequence[Mapping[str, Any]] | None,
    field_name: str,
    limit: int = 12,
) -> list[Mapping[str, Any]]:
    """
    Rank records by similarity of one text field to the query.

    Records with a positive score win; if none score, every record is a
    candidate. Ties are broken by original position.
    """
    if not records:
        return []
    query_tokens = set(ranking_tokens(query))
    scored = []
    for index, record in enumerate(records):
        value = str((record or {}).get(field_name) or "").strip()
        score = similarity_score(query_tokens, value) if query_tokens else 0.0
        scored.append((score, index, record))
    candidates = [item for item in scored if item[0] > 0] or scored
    candidates.sort(key=lambda item: (-item[0], item[1]))
    return [record for _, _, record in candidates[:limit]]
